# shelfledger/db/__init__.py
