# hugin/storage/__init__.py
"""hugin.storage: документное хранилище (CouchDB или память) и репозитории."""
