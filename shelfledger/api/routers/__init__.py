# shelfledger/api/routers/__init__.py
