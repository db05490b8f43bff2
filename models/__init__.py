"""
Creates the process-wide DBStorage instance used by the API and the
account store.
"""
from models.db_storage import DBStorage

storage = DBStorage()
storage.reload()
