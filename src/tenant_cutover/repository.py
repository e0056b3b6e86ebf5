"""DynamoDB document store."""

from typing import Any

import aioboto3  # type: ignore[import-untyped]
from botocore.exceptions import ClientError

from . import schema
from .config import StoreConfig
from .exceptions import PreconditionFailedError, ValidationError
from .models import Document
from .store_protocol import check_fields, write_size


class Repository:
    """
    Async DynamoDB document store.

    Implements ``DocumentStore`` over a single table keyed by collection path
    and document id. Every batch and transaction commits through
    TransactWriteItems, so it applies all of its writes or none of them.
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self.config = config if config is not None else StoreConfig()
        self.table_name = self.config.table_name
        self.region = self.config.region
        self.endpoint_url = self.config.endpoint_url
        self._session: aioboto3.Session | None = None
        self._client: Any = None

    @property
    def name(self) -> str:
        return self.table_name

    @property
    def max_batch_size(self) -> int:
        return schema.MAX_TRANSACT_ITEMS

    @property
    def max_batch_bytes(self) -> int:
        return schema.MAX_TRANSACT_BYTES

    async def _get_client(self) -> Any:
        """Get or create the DynamoDB client."""
        if self._client is None:
            self._session = aioboto3.Session(profile_name=self.config.profile_name)
            self._client = await self._session.client(
                "dynamodb",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
            ).__aenter__()
        return self._client

    async def close(self) -> None:
        """Close the DynamoDB client."""
        if self._client is not None:
            await self._client.__aexit__(None, None, None)
            self._client = None
            self._session = None

    # -------------------------------------------------------------------------
    # Table operations
    # -------------------------------------------------------------------------

    async def create_table(self) -> None:
        """Create the DynamoDB table if it doesn't exist."""
        client = await self._get_client()
        definition = schema.get_table_definition(self.table_name)

        try:
            await client.create_table(**definition)
            waiter = client.get_waiter("table_exists")
            await waiter.wait(TableName=self.table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise

    async def delete_table(self) -> None:
        """Delete the DynamoDB table."""
        client = await self._get_client()
        try:
            await client.delete_table(TableName=self.table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceNotFoundException":
                raise

    # -------------------------------------------------------------------------
    # Document operations
    # -------------------------------------------------------------------------

    async def get(self, path: str) -> dict[str, Any] | None:
        client = await self._get_client()

        response = await client.get_item(
            TableName=self.table_name,
            Key=schema.document_key(path),
            ConsistentRead=True,
        )

        item = response.get("Item")
        if not item:
            return None
        return schema.deserialize_item(item)

    async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        client = await self._get_client()
        if merge:
            op = self.build_merge_update(path, data)
            await client.update_item(**op["Update"])
        else:
            op = self.build_put(path, data)
            await client.put_item(**op["Put"])

    async def delete(self, path: str) -> None:
        client = await self._get_client()
        await client.delete_item(TableName=self.table_name, Key=schema.document_key(path))

    async def list_documents(self, collection_path: str) -> list[Document]:
        client = await self._get_client()

        documents: list[Document] = []
        query_args: dict[str, Any] = {
            "TableName": self.table_name,
            "KeyConditionExpression": "PK = :pk",
            "ExpressionAttributeValues": {":pk": {"S": collection_path}},
            "ConsistentRead": True,
        }

        while True:
            response = await client.query(**query_args)
            for item in response.get("Items", []):
                documents.append(
                    Document(
                        id=item[schema.SK]["S"],
                        path=item[schema.PATH_ATTR]["S"],
                        data=schema.deserialize_item(item),
                    )
                )

            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            query_args["ExclusiveStartKey"] = last_key

        return documents

    def batch(self) -> "DynamoWriteBatch":
        return DynamoWriteBatch(self)

    def transaction(self) -> "DynamoTransaction":
        return DynamoTransaction(self)

    # -------------------------------------------------------------------------
    # Transaction item builders
    # -------------------------------------------------------------------------

    def build_put(
        self, path: str, data: dict[str, Any], *, if_absent: bool = False
    ) -> dict[str, Any]:
        """Build a Put that replaces the whole document."""
        check_fields(data)
        item = schema.serialize_map(data)
        item.update(schema.document_key(path))
        item[schema.PATH_ATTR] = {"S": path}

        put: dict[str, Any] = {"Put": {"TableName": self.table_name, "Item": item}}
        if if_absent:
            put["Put"]["ConditionExpression"] = "attribute_not_exists(PK)"
        return put

    def build_merge_update(
        self,
        path: str,
        data: dict[str, Any],
        initial: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Build an Update that merges top-level fields into a document.

        Fields in ``initial`` are only written where the stored item lacks
        them (``if_not_exists``); fields also present in ``data`` win.

        Raises:
            ValidationError: If the document has too many fields for one
                UpdateExpression
        """
        check_fields(data)
        check_fields(initial or {})

        names: dict[str, str] = {"#path": schema.PATH_ATTR}
        values: dict[str, Any] = {":path": {"S": path}}
        clauses = ["#path = :path"]

        for i, (field, value) in enumerate(data.items()):
            names[f"#f{i}"] = field
            values[f":v{i}"] = schema.serialize_value(value)
            clauses.append(f"#f{i} = :v{i}")

        for i, (field, value) in enumerate((initial or {}).items()):
            if field in data:
                continue
            names[f"#i{i}"] = field
            values[f":i{i}"] = schema.serialize_value(value)
            clauses.append(f"#i{i} = if_not_exists(#i{i}, :i{i})")

        expression = "SET " + ", ".join(clauses)
        if len(expression) > schema.MAX_EXPRESSION_LENGTH:
            raise ValidationError(
                "document",
                path,
                f"{len(clauses) - 1} fields exceed the UpdateExpression length limit",
            )

        return {
            "Update": {
                "TableName": self.table_name,
                "Key": schema.document_key(path),
                "UpdateExpression": expression,
                "ExpressionAttributeNames": names,
                "ExpressionAttributeValues": values,
            }
        }

    def build_delete(self, path: str) -> dict[str, Any]:
        """Build a Delete (no error if the document is absent)."""
        return {
            "Delete": {
                "TableName": self.table_name,
                "Key": schema.document_key(path),
            }
        }

    async def transact_write(self, items: list[dict[str, Any]]) -> None:
        """
        Execute a transactional write.

        Raises:
            PreconditionFailedError: If a conditional write found its item present
        """
        if not items:
            return
        if len(items) > schema.MAX_TRANSACT_ITEMS:
            raise ValueError(
                f"Transaction of {len(items)} writes exceeds the maximum of "
                f"{schema.MAX_TRANSACT_ITEMS}"
            )

        client = await self._get_client()
        try:
            await client.transact_write_items(TransactItems=items)
        except ClientError as e:
            if e.response["Error"]["Code"] != "TransactionCanceledException":
                raise
            failed = _conditional_failure_index(e)
            if failed is None:
                raise
            path = _item_path(items[failed]) if failed >= 0 else None
            raise PreconditionFailedError(path) from e


def _conditional_failure_index(error: ClientError) -> int | None:
    """
    Index of the item whose condition failed in a cancelled transaction.

    Returns -1 when the cancellation was a condition failure but the reasons
    are not itemized, None when it was something else (e.g. a conflict).
    """
    reasons = error.response.get("CancellationReasons") or []
    for index, reason in enumerate(reasons):
        if reason.get("Code") == "ConditionalCheckFailed":
            return index
    if not reasons and "ConditionalCheckFailed" in str(error):
        return -1
    return None


def _item_path(item: dict[str, Any]) -> str | None:
    put = item.get("Put")
    if put is not None:
        return put["Item"][schema.PATH_ATTR]["S"]
    for kind in ("Update", "Delete"):
        op = item.get(kind)
        if op is not None:
            key = op["Key"]
            return f"{key[schema.PK]['S']}/{key[schema.SK]['S']}"
    return None


class DynamoWriteBatch:
    """Write batch committed as a single TransactWriteItems call."""

    def __init__(self, repository: Repository) -> None:
        self._repository = repository
        self._items: list[dict[str, Any]] = []
        self._size_bytes = 0

    def set(self, path: str, data: dict[str, Any], *, merge: bool = True) -> None:
        if merge:
            self._items.append(self._repository.build_merge_update(path, data))
        else:
            self._items.append(self._repository.build_put(path, data))
        self._size_bytes += write_size(path, data)

    def delete(self, path: str) -> None:
        self._items.append(self._repository.build_delete(path))
        self._size_bytes += write_size(path)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def size_bytes(self) -> int:
        return self._size_bytes

    async def commit(self) -> None:
        await self._repository.transact_write(self._items)
        self._items = []
        self._size_bytes = 0


class DynamoTransaction:
    """
    Read-then-write transaction.

    Reads are strongly consistent; queued writes commit through one
    TransactWriteItems call. Races are detected through conditional writes
    (``create``) rather than read tracking.
    """

    def __init__(self, repository: Repository) -> None:
        self._repository = repository
        self._items: list[dict[str, Any]] = []

    async def get(self, path: str) -> dict[str, Any] | None:
        return await self._repository.get(path)

    def set(
        self,
        path: str,
        data: dict[str, Any],
        *,
        merge: bool = True,
        initial: dict[str, Any] | None = None,
    ) -> None:
        if merge:
            self._items.append(self._repository.build_merge_update(path, data, initial))
        else:
            self._items.append(self._repository.build_put(path, {**(initial or {}), **data}))

    def create(self, path: str, data: dict[str, Any]) -> None:
        self._items.append(self._repository.build_put(path, data, if_absent=True))

    async def commit(self) -> None:
        await self._repository.transact_write(self._items)
        self._items = []
