# db_models.py
from typing import Any, Dict, List, Tuple

from pymongo import MongoClient
from pymongo.collection import Collection

from settings import RuntimeConfig, settings

TARGET_FIELDS = ("question_text", "answer", "options")


def open_question_store(cfg: RuntimeConfig) -> Tuple[MongoClient, Collection]:
    """Connect and return (client, collection). Caller closes the client."""
    client = MongoClient(cfg.mongodb_uri)
    collection = client[cfg.db_name][cfg.collection]
    return client, collection


def list_groups(coll: Collection, field: str = settings.GROUP_FIELD) -> List[Any]:
    """Distinct group keys in the order the store returns them, minus null and ""."""
    return [value for value in coll.distinct(field) if value is not None and value != ""]


def fetch_group(coll: Collection, value: Any, field: str = settings.GROUP_FIELD) -> List[Dict[str, Any]]:
    # materialized up front: a cursor left open across slow model calls times out
    return list(coll.find({field: value}))


def write_normalized(coll: Collection, record_id: Any, fields: Dict[str, Any]) -> int:
    """
    Set exactly question_text/answer/options on one record, keyed by _id.
    Returns the matched count.
    """
    update = {k: fields[k] for k in TARGET_FIELDS}
    res = coll.update_one({"_id": record_id}, {"$set": update})
    return res.matched_count
