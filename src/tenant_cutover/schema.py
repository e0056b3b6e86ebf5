"""DynamoDB schema definitions and key builders.

Each document is one item:

    PK     collection path   organisations/orgA/trainingRecords
    SK     document id       r1
    _path  document path     organisations/orgA/trainingRecords/r1
    ...    business fields as top-level attributes

Listing a collection is a Query on PK, which returns items ordered by id.
"""

from typing import Any

from .paths import split_document_path

DEFAULT_TABLE_NAME = "tenant-cutover"

PK = "PK"
SK = "SK"
PATH_ATTR = "_path"

# TransactWriteItems accepts at most 100 actions per call
MAX_TRANSACT_ITEMS = 100

# TransactWriteItems rejects requests over 4 MB in total
MAX_TRANSACT_BYTES = 4 * 1024 * 1024

# Longest UpdateExpression DynamoDB accepts
MAX_EXPRESSION_LENGTH = 4096


def document_key(path: str) -> dict[str, dict[str, str]]:
    """Build the primary key of a document."""
    collection_path, doc_id = split_document_path(path)
    return {PK: {"S": collection_path}, SK: {"S": doc_id}}


def get_table_definition(table_name: str) -> dict[str, Any]:
    """
    Get the DynamoDB table definition for CreateTable.

    Returns a dictionary suitable for boto3 create_table().
    """
    return {
        "TableName": table_name,
        "BillingMode": "PAY_PER_REQUEST",
        "AttributeDefinitions": [
            {"AttributeName": PK, "AttributeType": "S"},
            {"AttributeName": SK, "AttributeType": "S"},
        ],
        "KeySchema": [
            {"AttributeName": PK, "KeyType": "HASH"},
            {"AttributeName": SK, "KeyType": "RANGE"},
        ],
    }


# -------------------------------------------------------------------------
# Serialization helpers
# -------------------------------------------------------------------------


def serialize_map(data: dict[str, Any]) -> dict[str, Any]:
    """Serialize a Python dict to DynamoDB map format."""
    return {key: serialize_value(value) for key, value in data.items()}


def serialize_value(value: Any) -> dict[str, Any]:
    """Serialize a single value to DynamoDB format."""
    if isinstance(value, str):
        return {"S": value}
    elif isinstance(value, bool):
        return {"BOOL": value}
    elif isinstance(value, (int, float)):
        return {"N": str(value)}
    elif isinstance(value, dict):
        return {"M": serialize_map(value)}
    elif isinstance(value, (list, tuple)):
        return {"L": [serialize_value(v) for v in value]}
    elif value is None:
        return {"NULL": True}
    return {"S": str(value)}


def deserialize_map(data: dict[str, Any]) -> dict[str, Any]:
    """Deserialize a DynamoDB map to Python dict."""
    return {key: deserialize_value(value) for key, value in data.items()}


def deserialize_value(value: dict[str, Any]) -> Any:
    """Deserialize a single DynamoDB value."""
    if "S" in value:
        return value["S"]
    elif "N" in value:
        num_str = value["N"]
        if any(c in num_str for c in ".eE"):
            return float(num_str)
        return int(num_str)
    elif "BOOL" in value:
        return value["BOOL"]
    elif "M" in value:
        return deserialize_map(value["M"])
    elif "L" in value:
        return [deserialize_value(v) for v in value["L"]]
    elif "NULL" in value:
        return None
    return None


def deserialize_item(item: dict[str, Any]) -> dict[str, Any]:
    """Deserialize a stored item to its business fields."""
    return {
        key: deserialize_value(value)
        for key, value in item.items()
        if key not in (PK, SK, PATH_ATTR)
    }
