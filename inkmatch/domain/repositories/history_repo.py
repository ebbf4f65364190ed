from uuid import uuid4

from inkmatch.db.store import DocumentStore
from inkmatch.domain.models.match import MatchHistoryEntry
from inkmatch.domain.repositories.documents import to_doc

class MatchHistoryRepo:
    """Append-only audit trail of searches ('match_history'); never read back by matching."""

    def __init__(self, store: DocumentStore, collection_name: str = "match_history"):
        self.store = store
        self.col = collection_name

    async def add(self, entry: MatchHistoryEntry) -> str:
        entry_id = uuid4().hex
        await self.store.insert(self.col, entry_id, to_doc(entry))
        return entry_id
