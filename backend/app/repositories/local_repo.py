import base64
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import StorageError
from app.core.logging import get_logger
from app.repositories.base import to_document
from app.schemas.models import Transaction
from app.services.view_engine import FilterCriteria, filter_transactions

logger = get_logger("expense_tracker.repositories.local")


class LocalRepository:
    """JSON-file store: one document per user holding that user's transactions.

    Writes are serialized per repository and replace the file atomically, so
    concurrent requests neither lose updates nor observe a partial file.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        root = base_dir or Path(__file__).resolve().parents[2] / "data"
        self.data_dir = Path(root)
        self.transaction_dir = self.data_dir / "transactions"
        self.transaction_dir.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.Lock()

    def _path(self, user_id: str) -> Path:
        # Reversible encoding; distinct owners never share a file
        safe_id = base64.urlsafe_b64encode(user_id.encode("utf-8")).decode("ascii").rstrip("=") or "_"
        return self.transaction_dir / f"{safe_id}.json"

    def _load(self, user_id: str) -> list[dict[str, Any]]:
        path = self._path(user_id)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt transaction file: {path.name}", details={"error": str(e)}) from e
        if not isinstance(data, list):
            raise StorageError(f"Unexpected transaction file layout: {path.name}")
        return data

    def _dump(self, user_id: str, documents: list[dict[str, Any]]) -> None:
        path = self._path(user_id)
        fd, tmp_name = tempfile.mkstemp(dir=self.transaction_dir, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(json.dumps(documents, ensure_ascii=False, indent=2))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def list_transactions(
        self,
        user_id: str,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[Transaction]:
        transactions: list[Transaction] = []
        for document in self._load(user_id):
            try:
                transactions.append(Transaction.model_validate(document))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed transaction {document.get('id')!r}: {e}")
        if criteria is not None:
            transactions = filter_transactions(transactions, criteria)
        return transactions

    def get_transaction(self, transaction_id: str, user_id: str) -> Transaction | None:
        for document in self._load(user_id):
            if document.get("id") == transaction_id:
                return Transaction.model_validate(document)
        return None

    def save_transaction(self, transaction: Transaction, user_id: str) -> Transaction:
        payload = to_document(transaction)
        with self._write_lock:
            documents = self._load(user_id)
            for index, document in enumerate(documents):
                if document.get("id") == transaction.id:
                    documents[index] = payload
                    break
            else:
                documents.append(payload)
            self._dump(user_id, documents)
        return transaction

    def delete_transaction(self, transaction_id: str, user_id: str) -> bool:
        with self._write_lock:
            documents = self._load(user_id)
            remaining = [d for d in documents if d.get("id") != transaction_id]
            if len(remaining) == len(documents):
                return False
            self._dump(user_id, remaining)
        return True
