# shelfledger/schemas/__init__.py
