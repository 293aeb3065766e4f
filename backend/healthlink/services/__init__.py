from .audit import AuditRecorder
from .consent import ConsentSessionManager
from .entity_store import EntityCollection, InMemoryCollection, MonotonicClock, SqlCollection
from .storage import Storage, create_storage
