# argfolio/engine/__init__.py
