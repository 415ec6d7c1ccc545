# shelfledger/api/__init__.py
