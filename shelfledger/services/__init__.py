# shelfledger/services/__init__.py
