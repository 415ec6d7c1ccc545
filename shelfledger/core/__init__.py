# shelfledger/core/__init__.py
