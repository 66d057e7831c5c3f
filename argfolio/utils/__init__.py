# argfolio/utils/__init__.py
