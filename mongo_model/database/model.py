"""
Model façade over a single MongoDB collection.

A Model binds a collection name, an optional schema, an optional output
formatter and a borrowed database handle. Every operation validates input
against the schema, converts identifiers to ObjectId before they reach
storage and back to strings before they are returned.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError
from pymongo.write_concern import WriteConcern

from mongo_model.core.config import get_settings
from mongo_model.core.errors import (
    DocumentMissingError,
    InvalidIdError,
    NoDatabaseError,
    NotFoundError,
)
from mongo_model.schema.base import Document, SchemaValidator
from mongo_model.schema.fields import ID_FIELD
from mongo_model.schema.json_schema import JsonSchema
from mongo_model.schema.legacy import LegacySchema
from mongo_model.schema.object_id import is_object_id, to_object_id

logger = logging.getLogger(__name__)

OutputFormatter = Callable[[Document], Any]
Documents = Union[Mapping[str, Any], List[Mapping[str, Any]]]

ID_SORT = [(ID_FIELD, 1)]

_UNSET: Any = object()


class Model:
    """
    CRUD operations for one collection.

    Usage:
        students = Model("students", database=db)
        students.schema({"firstName": {"type": "string", "required": True}})
        created = await students.create({"firstName": "class"})
        found = await students.find_by_id(created["_id"])

    A schema passed to the constructor uses the legacy validator-map dialect;
    ``schema()`` attaches a JSON-Schema-like declaration, which takes
    precedence once set.
    """

    def __init__(
        self,
        collection_name: str,
        schema: Optional[Mapping[str, Any]] = None,
        database: Optional[AsyncIOMotorDatabase] = None,
        write_concern: Optional[WriteConcern] = _UNSET
    ):
        """
        Args:
            collection_name: Collection the model operates on
            schema: Optional legacy validator map
            database: Store handle; can also be supplied later with database()
            write_concern: Write concern for mutating operations; defaults to
                the durable one from settings, None uses the handle's default

        Raises:
            ValueError: If collection_name is empty
        """
        if not collection_name:
            raise ValueError("collection_name cannot be empty")
        self.collection_name = collection_name
        self._legacy_schema = LegacySchema(schema, name=collection_name)
        self._json_schema: Optional[JsonSchema] = None
        self._output_formatter: Optional[OutputFormatter] = None
        self._database = database
        self.write_concern = get_settings().write_concern() if write_concern is _UNSET else write_concern

    def __repr__(self) -> str:
        return f"<Model collection={self.collection_name}>"

    # ========================================================================
    # CONFIGURATION
    # ========================================================================

    @property
    def validator(self) -> SchemaValidator:
        """Active validator: the JSON schema if attached, else the legacy one."""
        if self._json_schema is not None:
            return self._json_schema
        return self._legacy_schema

    @property
    def fields(self):
        return self.validator.fields

    @property
    def id_fields(self):
        return self.validator.id_fields

    def schema(self, declaration: Optional[Mapping[str, Any]] = None, **options) -> Optional[JsonSchema]:
        """
        Attach or replace the JSON-Schema-like schema.

        Called without a declaration it returns the attached schema.

        Args:
            declaration: Field declarations
            **options: ``name`` overrides the collection name in error reports
        """
        if declaration is None:
            return self._json_schema
        name = options.get("name", self.collection_name)
        self._json_schema = JsonSchema(declaration, name=name)
        logger.debug(f"Attached schema to {self.collection_name}: {list(self._json_schema.fields)}")
        return self._json_schema

    def database(self, handle: Optional[AsyncIOMotorDatabase] = None) -> Optional[AsyncIOMotorDatabase]:
        """Inject the store handle; returns the current one when called without argument."""
        if handle is not None:
            self._database = handle
        return self._database

    def output_formatter(self, formatter: Optional[OutputFormatter] = _UNSET) -> Optional[OutputFormatter]:
        """Set (or clear with None) the formatter applied to read results."""
        if formatter is not _UNSET:
            self._output_formatter = formatter
        return self._output_formatter

    def object_id(self, value: Any) -> ObjectId:
        """Build an ObjectId from a string or ObjectId; InvalidIdError otherwise."""
        return to_object_id(value, collection=self.collection_name)

    ObjectID = object_id

    is_object_id = staticmethod(is_object_id)

    async def indices(self, indices: Iterable[Any]) -> List[str]:
        """
        Ensure indexes on the collection.

        Each entry is an index spec (``{"firstName": 1}`` or a list of
        ``(field, direction)`` pairs) or ``{"index": spec, "options": {...}}``.
        Failures are logged and skipped.

        Returns:
            Names of the indexes that were ensured
        """
        collection = self._collection()
        names = []
        for entry in indices:
            if isinstance(entry, Mapping) and isinstance(entry.get("index"), (Mapping, list)):
                index, options = entry["index"], entry.get("options") or {}
            else:
                index, options = entry, {}
            keys = list(index.items()) if isinstance(index, Mapping) else list(index)
            try:
                names.append(await collection.create_index(keys, **options))
            except PyMongoError as e:
                logger.error(f"Error ensuring index {keys} for {self.collection_name}: {e}")
        return names

    indexes = indices

    # ========================================================================
    # CREATE
    # ========================================================================

    async def create(self, documents: Documents) -> Any:
        """
        Validate and insert one document or a list of documents.

        A list is validated entirely before anything is written: the first
        invalid element aborts the whole batch.

        Args:
            documents: Document or list of documents

        Returns:
            Created document(s) with string identifiers, passed through the
            output formatter; a list for list input

        Raises:
            ValidationFailedError: If a document is rejected by the schema
            InvalidIdError: If a legacy identifier field cannot be converted
            NoDatabaseError: If no database handle is configured
        """
        if self._json_schema is None:
            return await self._legacy_create(documents)

        schema = self._json_schema
        many = isinstance(documents, list)
        batch = documents if many else [documents]

        for document in batch:
            schema.validate(document)
        to_insert = [schema.strings_to_ids(document) for document in batch]

        inserted = await self._insert(to_insert)
        results = [self._present(document) for document in inserted]
        return results if many else results[0]

    async def _legacy_create(self, documents: Documents) -> Any:
        schema = self._legacy_schema
        many = isinstance(documents, list)
        batch = [
            schema.strings_to_ids(schema.sanitize(document))
            for document in (documents if many else [documents])
        ]
        for document in batch:
            schema.validate(document)

        inserted = await self._insert(batch)
        results = [self._present(document) for document in inserted]
        return results if many else results[0]

    async def create_with_no_validation(self, documents: Documents) -> Any:
        """Insert document(s) as given, without validation or conversion."""
        many = isinstance(documents, list)
        inserted = await self._insert(documents if many else [documents])
        results = [self.validator.ids_to_strings(document) for document in inserted]
        return results if many else results[0]

    async def _insert(self, documents: List[Mapping[str, Any]]) -> List[Document]:
        if not documents:
            return []
        # ids are assigned client-side so the inserted documents can be returned as-is
        to_insert = [dict(document) for document in documents]
        for document in to_insert:
            document.setdefault(ID_FIELD, ObjectId())

        collection = self._collection(durable=True)
        if len(to_insert) == 1:
            await collection.insert_one(to_insert[0])
        else:
            await collection.insert_many(to_insert)
        logger.debug(f"Inserted {len(to_insert)} document(s) into {self.collection_name}")
        return to_insert

    # ========================================================================
    # UPDATE
    # ========================================================================

    async def update(self, document: Mapping[str, Any], **options) -> Document:
        """
        Update the document identified by ``document["_id"]``.

        Only the fields present are validated and ``$set``.

        Args:
            document: Fields to update, including ``_id``
            **options: Extra find_one_and_update arguments

        Returns:
            The updated document with string identifiers

        Raises:
            InvalidIdError: If ``_id`` is missing or malformed
            ValidationFailedError: If the fields are rejected by the schema
            DocumentMissingError: If no document has that ``_id``
        """
        _id = document.get(ID_FIELD)
        if not _id:
            raise InvalidIdError(
                "No _id parameter supplied with object to update",
                collection=self.collection_name
            )
        _id = self.object_id(_id)
        changes = self._prepare_changes(document)

        collection = self._collection(durable=True)
        if changes:
            params: Dict[str, Any] = {"sort": ID_SORT, "return_document": ReturnDocument.AFTER}
            params.update(options)
            result = await collection.find_one_and_update({ID_FIELD: _id}, {"$set": changes}, **params)
        else:
            result = await collection.find_one({ID_FIELD: _id})

        if result is None:
            raise DocumentMissingError(
                f"{self.collection_name} with `_id` {_id} does not exist",
                collection=self.collection_name
            )
        return self.validator.ids_to_strings(result)

    async def update_by_ids(self, ids: Iterable[Any], patch: Mapping[str, Any], **options) -> None:
        """Apply ``patch`` to every document whose ``_id`` is in ``ids``."""
        selector = {ID_FIELD: {"$in": [self.object_id(_id) for _id in ids]}}
        await self.update_with_selector(selector, patch, **options)

    async def update_with_selector(self, selector: Mapping[str, Any], patch: Mapping[str, Any], **options) -> None:
        """
        Validate ``patch`` and ``$set`` it on every document matching ``selector``.

        Raises:
            ValidationFailedError: If the patch is rejected by the schema
        """
        changes = self._prepare_changes(patch)
        await self._update_many(selector, changes, options)

    async def update_with_selector_no_validation(
        self,
        selector: Mapping[str, Any],
        patch: Mapping[str, Any],
        **options
    ) -> None:
        """Same as update_with_selector, without validation or conversion."""
        await self._update_many(selector, dict(patch), options)

    async def _update_many(self, selector: Mapping[str, Any], changes: Document, options: Dict[str, Any]) -> None:
        collection = self._collection(durable=True)
        options = {k: v for k, v in options.items() if k != "multi"}
        if not changes:
            logger.debug(f"Nothing to update in {self.collection_name}")
            return
        result = await collection.update_many(selector, {"$set": changes}, **options)
        logger.debug(f"Updated {result.modified_count} document(s) in {self.collection_name}")

    async def find_and_modify(
        self,
        selector: Mapping[str, Any],
        update_query: Mapping[str, Any],
        **options
    ) -> Any:
        """
        Atomically apply a raw update query to the first matching document.

        No validation is performed. Pass ``new=True`` (or ``return_document``)
        to get the modified document instead of the original.

        Raises:
            DocumentMissingError: If nothing matches ``selector``
        """
        params: Dict[str, Any] = {"sort": ID_SORT}
        if options.pop("new", False):
            params["return_document"] = ReturnDocument.AFTER
        params.update(options)

        collection = self._collection(durable=True)
        document = await collection.find_one_and_update(selector, update_query, **params)
        if document is None:
            raise DocumentMissingError(
                f"Document using selector {selector} does not exist",
                collection=self.collection_name
            )
        return self._present(document)

    async def upsert(self, selector: Mapping[str, Any], document: Mapping[str, Any], **options) -> Document:
        """
        ``$set`` the validated fields on the first match, inserting when nothing matches.

        Returns:
            The resulting document with string identifiers
        """
        changes = self._prepare_changes(document)
        selector = self.validator.convert_query(selector)

        params: Dict[str, Any] = {"sort": ID_SORT, "upsert": True, "return_document": ReturnDocument.AFTER}
        params.update(options)

        collection = self._collection(durable=True)
        result = await collection.find_one_and_update(selector, {"$set": changes}, **params)
        return self.validator.ids_to_strings(result)

    async def unset_field(self, id: Any, field: str) -> None:
        """
        Unset a single field of a document. No schema checks.

        Raises:
            InvalidIdError: If ``id`` is not a valid identifier
        """
        _id = self._checked_id(id)
        collection = self._collection(durable=True)
        await collection.update_one({ID_FIELD: _id}, {"$unset": {field: ""}})

    def _prepare_changes(self, document: Mapping[str, Any]) -> Document:
        changes = {k: v for k, v in document.items() if k != ID_FIELD}
        if self._json_schema is None:
            changes = self._legacy_schema.sanitize(changes)
        validator = self.validator
        validator.partial_validate(changes)
        return validator.strings_to_ids(changes)

    # ========================================================================
    # READ
    # ========================================================================

    async def find(self, query: Optional[Mapping[str, Any]] = None, **options) -> List[Any]:
        """
        Find every document matching ``query``.

        String identifiers in an operator-free query are converted first.

        Args:
            query: MongoDB filter
            **options: Extra find arguments (projection, sort, limit, skip...)

        Returns:
            Formatted documents, empty list when nothing matches
        """
        query = self.validator.convert_query(query or {})
        documents = await self._find(query, **options)
        return [self._present(document) for document in documents]

    async def find_with_no_validation(self, query: Optional[Mapping[str, Any]] = None, **options) -> List[Document]:
        """Find without query conversion or output formatting."""
        documents = await self._find(query or {}, **options)
        return [self.validator.ids_to_strings(document) for document in documents]

    async def find_one(self, query: Optional[Mapping[str, Any]] = None, **options) -> Any:
        """
        Find the first document matching ``query``.

        Raises:
            NotFoundError: If nothing matches; detail carries query and collection
        """
        query = self.validator.convert_query(query or {})
        collection = self._collection()
        document = await collection.find_one(query, **options)
        if document is None:
            raise NotFoundError(query=query, collection=self.collection_name)
        return self._present(document)

    async def find_by_id(self, id: Any) -> Any:
        """Find a document by string or ObjectId identifier."""
        _id = self._checked_id(id)
        return await self.find_one({ID_FIELD: _id})

    async def find_by_ids(self, ids: Iterable[Any]) -> List[Any]:
        """Find the documents with the given identifiers, ordered by ``_id``."""
        object_ids = [self._checked_id(_id) for _id in ids]
        documents = await self._find({ID_FIELD: {"$in": object_ids}}, sort=ID_SORT)
        return [self._present(document) for document in documents]

    async def ensure(self, query: Mapping[str, Any], defaults: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Return the first document matching ``query``, creating it when missing.

        Args:
            query: Plain equality fields identifying the document
            defaults: Extra fields set only when the document is created
        """
        defaults = dict(defaults or {})
        if defaults:
            self._prepare_changes(defaults)
        try:
            return await self.find_one(query)
        except NotFoundError:
            logger.debug(f"No {self.collection_name} matches {query}, creating it")
            return await self.create({**query, **defaults})

    async def count(self, query: Optional[Mapping[str, Any]] = None) -> int:
        """Count the documents matching ``query``."""
        query = self.validator.convert_query(query or {})
        collection = self._collection()
        return await collection.count_documents(query)

    async def _find(self, query: Mapping[str, Any], **options) -> List[Document]:
        collection = self._collection()
        cursor = collection.find(query, **options)
        return await cursor.to_list(length=None)

    # ========================================================================
    # DELETE
    # ========================================================================

    def remove(self, query: Optional[Mapping[str, Any]]):
        """
        Delete every document matching ``query``; ``{}`` deletes them all.

        Returns:
            Awaitable completing once the delete is acknowledged

        Raises:
            TypeError: Immediately, if no query is given
        """
        if query is None:
            raise TypeError("remove() expects a query")
        return self._remove(query)

    def remove_by_id(self, id: Any):
        """
        Delete the document with the given identifier.

        Raises:
            TypeError: Immediately, if no id is given
        """
        if id is None:
            raise TypeError("remove_by_id() expects an id")
        return self._remove_by_id(id)

    async def _remove(self, query: Mapping[str, Any]) -> None:
        query = self.validator.convert_query(query)
        collection = self._collection(durable=True)
        result = await collection.delete_many(query)
        logger.debug(f"Removed {result.deleted_count} document(s) from {self.collection_name}")

    async def _remove_by_id(self, id: Any) -> None:
        _id = self.object_id(id)
        collection = self._collection(durable=True)
        await collection.delete_one({ID_FIELD: _id})

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _collection(self, durable: bool = False) -> AsyncIOMotorCollection:
        if self._database is None:
            logger.error(f"Error fetching database for {self.collection_name}")
            raise NoDatabaseError("error fetching database", collection=self.collection_name)
        if durable and self.write_concern is not None:
            return self._database.get_collection(self.collection_name, write_concern=self.write_concern)
        return self._database[self.collection_name]

    def _checked_id(self, id: Any) -> ObjectId:
        if not is_object_id(id):
            raise InvalidIdError(f"Invalid mongo id: {id}", collection=self.collection_name)
        return self.object_id(id)

    def _present(self, document: Mapping[str, Any]) -> Any:
        document = self.validator.ids_to_strings(document)
        if self._output_formatter is not None:
            document = self._output_formatter(document)
        return document
