"""
Business logic for products.

``ProductService`` validates input, orchestrates ``ProductRepository``
calls and wraps every outcome in the response envelope: each method
returns an ``ApiSuccess`` or raises an ``ApiError``.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from query_builder import INT64_MAX, build_query_options
from repositories import ProductRepository
from responses import ApiError, ApiSuccess
from schemas import Product, ProductUpdate, describe_errors

logger = logging.getLogger(__name__)


def is_missing_id(raw_id: Any) -> bool:
    return raw_id is None or (isinstance(raw_id, str) and not raw_id.strip())


def parse_product_id(raw_id: Any) -> Optional[int]:
    """Return ``raw_id`` as an int, or ``None`` when it is not a whole number
    that fits in a BSON int64.
    """
    if isinstance(raw_id, bool):
        return None
    if isinstance(raw_id, int):
        product_id = raw_id
    elif isinstance(raw_id, str):
        product_id = _parse_whole_number(raw_id.strip())
    else:
        return None
    if product_id is None or not -INT64_MAX - 1 <= product_id <= INT64_MAX:
        return None
    return product_id


def _parse_whole_number(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isfinite(number) and number.is_integer():
        return int(number)
    return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProductService:
    def __init__(self, repository: ProductRepository, id_retries: int = 3):
        self.repository = repository
        self.id_retries = max(1, id_retries)

    # ----------------------------------------------------------------------
    # Read
    # ----------------------------------------------------------------------

    def list_products(self, query: Optional[Mapping[str, Any]] = None) -> ApiSuccess:
        try:
            filt, options = build_query_options(query)
            products = self.repository.find_with_pagination(filt, options)
            logger.info("[%d] products fetched successfully", len(products))
            return ApiSuccess(
                message="Products fetched successfully",
                status_code=200,
                data=products,
                success_code="PRODUCTS_FETCHED",
            )
        except ApiError:
            raise
        except Exception as e:
            logger.exception("Error fetching products")
            raise ApiError(
                message="Failed to fetch products",
                status_code=500,
                error_code="PRODUCTS_FETCH_ERROR",
                details=str(e),
            )

    def get_product(self, raw_id: Any) -> ApiSuccess:
        try:
            if is_missing_id(raw_id):
                raise ApiError(message="Product ID is required", status_code=400, error_code="MISSING_PRODUCT_ID")

            # A non-numeric id cannot match anything, so it is a plain miss.
            product_id = parse_product_id(raw_id)
            product = self.repository.find_by_id(product_id) if product_id is not None else None
            if not product:
                logger.info("Product [%s] not found", raw_id)
                raise ApiError(message="Product not found", status_code=404, error_code="PRODUCT_NOT_FOUND")

            logger.info("Product [%s] fetched successfully", product_id)
            return ApiSuccess(
                message="Product fetched successfully",
                status_code=200,
                data=product,
                success_code="PRODUCT_FETCHED",
            )
        except ApiError:
            raise
        except Exception as e:
            logger.exception("Error fetching product [%s]", raw_id)
            raise ApiError(
                message="Failed to fetch product",
                status_code=500,
                error_code="PRODUCT_FETCH_ERROR",
                details=str(e),
            )

    # ----------------------------------------------------------------------
    # Write
    # ----------------------------------------------------------------------

    def create_product(self, data: Optional[Mapping[str, Any]]) -> ApiSuccess:
        try:
            if not data:
                raise ApiError(message="Product data is required", status_code=400, error_code="MISSING_PRODUCT_DATA")

            product = self._validate(Product, data)
            created = self._insert_with_next_id(product.model_dump(mode="json", exclude_none=True))

            logger.info("Product [%s] created successfully", created["id"])
            return ApiSuccess(
                message="Product created successfully",
                status_code=201,
                data=created,
                success_code="PRODUCT_CREATED",
            )
        except ApiError:
            raise
        except Exception as e:
            logger.exception("Error creating product")
            raise ApiError(
                message="Failed to create product",
                status_code=500,
                error_code="PRODUCT_CREATE_ERROR",
                details=str(e),
            )

    def update_product(self, raw_id: Any, patch: Optional[Mapping[str, Any]]) -> ApiSuccess:
        try:
            product_id = self._require_id(raw_id)
            if not patch:
                raise ApiError(message="Update data is required", status_code=400, error_code="MISSING_UPDATE_DATA")

            changes = self._validate(ProductUpdate, patch).model_dump(mode="json", exclude_unset=True)

            existing = self.repository.find_by_id(product_id)
            if not existing:
                raise ApiError(message="Product not found", status_code=404, error_code="PRODUCT_NOT_FOUND")

            # Fields are overwritten whole, lists included; the merged record
            # must still be a valid product.
            self._validate(Product, {**existing, **changes})

            changes["updatedAt"] = _now()
            updated = self.repository.update(product_id, changes)
            if not updated:
                raise ApiError(message="Product not found", status_code=404, error_code="PRODUCT_NOT_FOUND")

            logger.info("Product [%s] updated successfully", product_id)
            return ApiSuccess(
                message="Product updated successfully",
                status_code=200,
                data=updated,
                success_code="PRODUCT_UPDATED",
            )
        except ApiError:
            raise
        except Exception as e:
            logger.exception("Error updating product [%s]", raw_id)
            raise ApiError(
                message="Failed to update product",
                status_code=500,
                error_code="PRODUCT_UPDATE_ERROR",
                details=str(e),
            )

    def delete_product(self, raw_id: Any) -> ApiSuccess:
        try:
            product_id = self._require_id(raw_id)

            deleted = self.repository.delete_by_id(product_id)
            if not deleted:
                raise ApiError(message="Product not found", status_code=404, error_code="PRODUCT_NOT_FOUND")

            logger.info("Product [%s] deleted successfully", product_id)
            return ApiSuccess(
                message="Product deleted successfully",
                status_code=200,
                data=deleted,
                success_code="PRODUCT_DELETED",
            )
        except ApiError:
            raise
        except Exception as e:
            logger.exception("Error deleting product [%s]", raw_id)
            raise ApiError(
                message="Failed to delete product",
                status_code=500,
                error_code="PRODUCT_DELETE_ERROR",
                details=str(e),
            )

    # ----------------------------------------------------------------------
    # Helpers
    # ----------------------------------------------------------------------

    @staticmethod
    def _require_id(raw_id: Any) -> int:
        if is_missing_id(raw_id):
            raise ApiError(message="Product ID is required", status_code=400, error_code="MISSING_PRODUCT_ID")
        product_id = parse_product_id(raw_id)
        if product_id is None:
            raise ApiError(message="Invalid product ID format", status_code=400, error_code="INVALID_PRODUCT_ID")
        return product_id

    @staticmethod
    def _validate(model, data: Mapping[str, Any]):
        if not isinstance(data, Mapping):
            raise ApiError(
                message="Invalid product data",
                status_code=400,
                error_code="INVALID_PRODUCT_DATA",
                details="Expected a JSON object",
            )
        try:
            return model.model_validate(dict(data))
        except ValidationError as e:
            raise ApiError(
                message="Invalid product data",
                status_code=400,
                error_code="INVALID_PRODUCT_DATA",
                details=describe_errors(e),
            )

    def _insert_with_next_id(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Insert ``doc`` under ``max(id) + 1``.

        Concurrent creators may compute the same id; the unique index on
        ``id`` rejects the loser, which recomputes and tries again.
        """
        now = _now()
        doc["createdAt"] = now
        doc["updatedAt"] = now
        for attempt in range(1, self.id_retries):
            try:
                return self._create_with_next_id(doc)
            except DuplicateKeyError:
                logger.warning(
                    "Product id %s already taken, retrying (%d/%d)",
                    doc["id"], attempt, self.id_retries,
                )
        return self._create_with_next_id(doc)

    def _create_with_next_id(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        doc["id"] = self.repository.get_last_id() + 1
        return self.repository.create(doc)
