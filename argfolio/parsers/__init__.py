# argfolio/parsers/__init__.py
