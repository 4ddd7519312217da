"""
JSON file record store.

One JSON document per review and per restaurant under a data root:
- Reviews (data/reviews/<review_id>.json)
- Restaurants (data/restaurants/<restaurant_id>.json)
"""

import json
import os
import logging
import tempfile
from typing import Dict, List, Optional

from ratingsync.errors import StoreReadError, StoreWriteError
from ratingsync.models.aggregate import Aggregate
from ratingsync.models.review import Review
from ratingsync.store.base import RecordStore

logger = logging.getLogger(__name__)


class JsonRecordStore(RecordStore):
    """
    File-backed record store.

    Aggregate writes merge into the existing restaurant document: only the
    count and average fields are replaced, everything else is preserved.
    Each file is replaced atomically, so readers never see a half-written
    document.
    """

    def __init__(self, data_root: str, **field_names):
        """
        Initialize JSON store.

        Args:
            data_root: Root data directory (e.g., /path/to/data)
            field_names: Optional overrides for group/value/count/average field names
        """
        super().__init__(**field_names)
        self.data_root = data_root
        self.reviews_dir = os.path.join(data_root, "reviews")
        self.restaurants_dir = os.path.join(data_root, "restaurants")

        os.makedirs(self.reviews_dir, exist_ok=True)
        os.makedirs(self.restaurants_dir, exist_ok=True)

        logger.info(f"Initialized JsonRecordStore with data_root={data_root}")

    def query_by_group(self, group_id: str) -> List[Review]:
        """
        Scan every review file and keep those belonging to group_id.

        Raises:
            StoreReadError: If the directory or any review file cannot be read
        """
        try:
            documents = self._load_all(self.reviews_dir)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to query reviews for restaurant {group_id}: {e}")
            raise StoreReadError(f"Query failed for restaurant {group_id}: {e}", group_id) from e

        reviews = [
            self._to_review(review_id, data)
            for review_id, data in documents.items()
            if data.get(self.group_field) == group_id
        ]
        logger.debug(f"Loaded {len(reviews)} reviews for restaurant {group_id}")
        return reviews

    def write_aggregate(self, group_id: str, aggregate: Aggregate) -> None:
        """
        Overwrite the aggregate fields on the restaurant document.

        Raises:
            StoreWriteError: If the document cannot be read or written
        """
        try:
            filepath = self._document_path(self.restaurants_dir, group_id)
            document = self._read_document(filepath) or {}
            document.update(aggregate.to_document(self.count_field, self.average_field))
            self._write_document(filepath, document)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to write aggregate for restaurant {group_id}: {e}")
            raise StoreWriteError(f"Write failed for restaurant {group_id}: {e}", group_id) from e

    def get_aggregate(self, group_id: str) -> Optional[Aggregate]:
        try:
            document = self._read_document(self._document_path(self.restaurants_dir, group_id))
        except (OSError, ValueError) as e:
            raise StoreReadError(f"Failed to load restaurant {group_id}: {e}", group_id) from e

        if document is None:
            return None
        return Aggregate.from_document(document, self.count_field, self.average_field)

    def list_groups(self) -> List[str]:
        try:
            groups = set(self._document_ids(self.restaurants_dir))
            for data in self._load_all(self.reviews_dir).values():
                group_id = data.get(self.group_field)
                if group_id:
                    groups.add(group_id)
        except (OSError, ValueError) as e:
            raise StoreReadError(f"Failed to list restaurants: {e}") from e
        return sorted(groups, key=str)

    def put_record(self, review_id: str, data: dict) -> None:
        try:
            self._write_document(self._document_path(self.reviews_dir, review_id), data)
        except (OSError, ValueError) as e:
            raise StoreWriteError(f"Failed to save review {review_id}: {e}") from e
        logger.debug(f"Saved review {review_id}")

    def delete_record(self, review_id: str) -> None:
        try:
            os.remove(self._document_path(self.reviews_dir, review_id))
        except FileNotFoundError:
            logger.debug(f"Review {review_id} already absent")
        except (OSError, ValueError) as e:
            raise StoreWriteError(f"Failed to delete review {review_id}: {e}") from e

    def _document_path(self, directory: str, doc_id: str) -> str:
        if not isinstance(doc_id, str):
            raise ValueError(f"Document id must be a string, got {type(doc_id).__name__}: {doc_id!r}")
        if not doc_id or os.sep in doc_id or "/" in doc_id or doc_id in (".", ".."):
            raise ValueError(f"Invalid document id: {doc_id!r}")
        return os.path.join(directory, f"{doc_id}.json")

    def _document_ids(self, directory: str) -> List[str]:
        return [
            filename[:-len(".json")]
            for filename in os.listdir(directory)
            if filename.endswith(".json")
        ]

    def _load_all(self, directory: str) -> Dict[str, dict]:
        documents = {}
        for doc_id in self._document_ids(directory):
            data = self._read_document(os.path.join(directory, f"{doc_id}.json"))
            # Deleted between listdir and open
            if data is not None:
                documents[doc_id] = data
        return documents

    def _read_document(self, filepath: str) -> Optional[dict]:
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            return None

        if not isinstance(data, dict):
            raise ValueError(f"{filepath} does not contain a JSON object")
        return data

    def _write_document(self, filepath: str, data: dict) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(filepath), suffix=".tmp")
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, filepath)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
