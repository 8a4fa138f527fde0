# ==============================================================================
# BASE SERVICE - Generic Business Logic Layer
# ==============================================================================
# Shared plumbing for services bound to one collection
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from agricsmart.core.exceptions import NotFoundError
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter, SortSpec

ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class BaseService(Generic[ResponseSchemaType]):
    """
    Base service providing lookups and response conversion.

    Subclasses set ``response_schema`` and ``not_found_message``; the
    adapter is shared by every service of a request.

    Example:
        >>> class ProductService(BaseService[ProductResponse]):
        ...     response_schema = ProductResponse
    """

    response_schema: Type[ResponseSchemaType]
    not_found_message: str = "Resource not found"

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        collection_name: str,
    ) -> None:
        self._adapter = adapter
        self._collection_name = collection_name

    def _to_response(self, entity: Dict[str, Any]) -> ResponseSchemaType:
        """Convert a stored document to the response schema."""
        return self.response_schema.model_validate(entity)

    async def _get_document(self, id: Any) -> Dict[str, Any]:
        """
        Fetch a raw document by id.

        Raises:
            NotFoundError: If no document has that id
        """
        document = await self._adapter.get_by_id(self._collection_name, id)
        if not document:
            raise NotFoundError(
                message=self.not_found_message,
                resource_type=self._collection_name,
                resource_id=id,
            )
        return document

    async def get_by_id(self, id: Any) -> ResponseSchemaType:
        return self._to_response(await self._get_document(id))

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[ResponseSchemaType]:
        results = await self._adapter.get_all(
            self._collection_name,
            skip=skip,
            limit=limit,
            filters=filters,
            sort=sort,
        )
        return [self._to_response(r) for r in results]
