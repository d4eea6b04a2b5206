# memory_vault/core/repository.py

from typing import TypeVar, Type, Optional, List, Any, Dict, Tuple, Generic
from datetime import datetime, date, time, timezone

from pydantic import BaseModel
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.results import InsertOneResult, UpdateResult, DeleteResult
from pymongo.errors import DuplicateKeyError
from loguru import logger

from memory_vault.core.exceptions import PersistenceError

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """Base repository for MongoDB collections backed by Motor and Pydantic.

    Lookups by an id that does not resolve return ``None`` (or ``False`` for
    deletes); driver failures are logged and raised as ``PersistenceError``.
    """

    model: Type[ModelType]
    collection_name: str

    # Never touched by partial updates
    immutable_fields = ("_id", "id", "created_at")

    def __init__(self, db: AsyncIOMotorDatabase):
        if not getattr(self, 'collection_name', None):
            raise AttributeError("Repository subclass must define a 'collection_name'")
        if not hasattr(self, 'model') or not issubclass(self.model, BaseModel):
            raise AttributeError("Repository subclass must define a Pydantic 'model'")

        self.db = db
        self.collection: AsyncIOMotorCollection = db[self.collection_name]
        logger.debug(f"Repository initialized for collection: '{self.collection_name}'")

    @staticmethod
    def _to_objectid(id_str: Any) -> Optional[ObjectId]:
        """Converts input to an ObjectId, returning None when it is not a valid id."""
        if isinstance(id_str, ObjectId):
            return id_str
        if isinstance(id_str, str) and ObjectId.is_valid(id_str):
            try:
                return ObjectId(id_str)
            except InvalidId:
                return None
        return None

    def _handle_db_exception(self, e: Exception, operation: str, doc_id: Any = None, query: Optional[Dict] = None):
        """Logs a driver failure and raises it as a PersistenceError."""
        context = f"op='{operation}' coll='{self.collection_name}'"
        if doc_id:
            context += f" id='{doc_id}'"
        if query:
            context += f" query='{str(query)[:100]}'"

        log_msg = f"DB Error during {context}: {e}"
        if isinstance(e, DuplicateKeyError):
            dup_key_info = e.details.get('keyValue', {}) if e.details else {}
            logger.error(f"{log_msg} - Duplicate Key: {dup_key_info}")
        else:
            logger.opt(exception=e).error(log_msg)
        raise PersistenceError(f"Database error during operation: {operation}", operation=operation) from e

    def _prepare_data_for_db(self, data: Dict) -> Dict:
        """Converts values BSON cannot encode. Calendar dates become midnight UTC datetimes."""
        prepared_data = {}
        for key, value in data.items():
            if isinstance(value, date) and not isinstance(value, datetime):
                prepared_data[key] = datetime.combine(value, time.min, tzinfo=timezone.utc)
            else:
                prepared_data[key] = value
        return prepared_data

    async def create_indexes(self):
        """Subclasses create the indexes their queries rely on."""

    async def get_by_id(self, id: str | ObjectId) -> Optional[ModelType]:
        """Fetches a document by its _id."""
        obj_id = self._to_objectid(id)
        if not obj_id:
            return None
        try:
            document = await self.collection.find_one({"_id": obj_id})
        except Exception as e:
            self._handle_db_exception(e, "get_by_id", obj_id)
        return self.model.model_validate(document) if document else None

    async def list_by(
        self,
        query: Optional[Dict[str, Any]] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[ModelType]:
        """Lists documents matching a query. ``limit=0`` returns every match."""
        query = query or {}
        try:
            cursor = self.collection.find(query)
            if sort:
                cursor = cursor.sort(sort)
            if skip > 0:
                cursor = cursor.skip(skip)
            if limit > 0:
                cursor = cursor.limit(limit)
            documents = await cursor.to_list(length=limit if limit > 0 else None)
        except Exception as e:
            self._handle_db_exception(e, "list_by", query=query)
        return [self.model.model_validate(doc) for doc in documents]

    async def create(self, data_in: BaseModel | Dict) -> ModelType:
        """Inserts a new document and returns it as stored."""
        if isinstance(data_in, BaseModel):
            create_data = data_in.model_dump(exclude_unset=False, by_alias=False)
        else:
            create_data = data_in.copy()

        create_data = self._prepare_data_for_db(create_data)

        now = datetime.now(timezone.utc)
        create_data.setdefault("created_at", now)
        create_data.setdefault("updated_at", create_data["created_at"])

        create_data.pop("_id", None)
        create_data.pop("id", None)

        try:
            result: InsertOneResult = await self.collection.insert_one(create_data)
        except Exception as e:
            self._handle_db_exception(e, "create")

        created_document = await self.get_by_id(result.inserted_id)
        if created_document is None:
            logger.critical(f"Failed to retrieve document immediately after insertion! ID: {result.inserted_id}, Collection: {self.collection_name}")
            raise PersistenceError("Failed to retrieve document after creation.", operation="create")
        return created_document

    async def update(self, id: str | ObjectId, data_in: BaseModel | Dict) -> Optional[ModelType]:
        """Applies a partial update with $set. Returns None if the id does not resolve."""
        obj_id = self._to_objectid(id)
        if not obj_id:
            return None

        if isinstance(data_in, BaseModel):
            update_data = data_in.model_dump(exclude_unset=True, by_alias=False)
        else:
            update_data = data_in.copy()

        update_data = self._prepare_data_for_db(update_data)
        for field in self.immutable_fields:
            update_data.pop(field, None)

        if not update_data:
            logger.debug(f"Update called for ID {id} with no updatable data.")
            return await self.get_by_id(obj_id)

        update_data["updated_at"] = datetime.now(timezone.utc)

        try:
            result: UpdateResult = await self.collection.update_one(
                {"_id": obj_id},
                {"$set": update_data},
            )
        except Exception as e:
            self._handle_db_exception(e, "update", obj_id)

        if result.matched_count == 0:
            logger.warning(f"Document not found for update: ID {id}, Collection: {self.collection_name}")
            return None

        logger.debug(f"Document updated: ID {id}, Matched: {result.matched_count}, Modified: {result.modified_count}")
        return await self.get_by_id(obj_id)

    async def delete(self, id: str | ObjectId) -> bool:
        """Deletes a document by id. Returns False if nothing was deleted."""
        obj_id = self._to_objectid(id)
        if not obj_id:
            return False
        try:
            result: DeleteResult = await self.collection.delete_one({"_id": obj_id})
        except Exception as e:
            self._handle_db_exception(e, "delete", obj_id)

        deleted = result.deleted_count > 0
        if deleted:
            logger.info(f"Document deleted: ID {id}, Collection: {self.collection_name}")
        else:
            logger.warning(f"Document not found for deletion: ID {id}, Collection: {self.collection_name}")
        return deleted

    async def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        """Counts documents matching a query."""
        query = query or {}
        try:
            return await self.collection.count_documents(query)
        except Exception as e:
            self._handle_db_exception(e, "count", query=query)
