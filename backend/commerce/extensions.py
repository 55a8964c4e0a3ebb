# Overview: Flask extension instances for databases, migrations and caching.

from flask_caching import Cache
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .docstore import DocumentStore

# Rows stay usable after commit.
db = SQLAlchemy(session_options={"expire_on_commit": False})
migrate = Migrate()
cache = Cache()
mongo = DocumentStore()
