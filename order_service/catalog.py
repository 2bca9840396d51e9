"""Read-only catalog snapshot used when pricing carts."""

from .schemas import Product, ProductFilter
from .store import RecordCollection


class CatalogSnapshot:
    """Read-only accessor over the product collection.

    Products are maintained by the catalog-management collaborator; the order
    core never writes to them.
    """

    def __init__(self, products: RecordCollection[Product]):
        self._products = products

    def get_product(self, product_id: str) -> Product | None:
        return self._products.find_by_id(product_id)

    def list_products(self, product_filter: ProductFilter | None = None) -> list[Product]:
        """List products matching an optional filter.

        Args:
            product_filter: Category, availability and free-text criteria.

        Returns:
            list[Product]: Matching products sorted by category then name.
        """
        product_filter = product_filter or ProductFilter()
        search = product_filter.search.lower() if product_filter.search else None

        def matches(product: Product) -> bool:
            if product_filter.available_only and not product.available:
                return False
            if product_filter.category and product.category != product_filter.category:
                return False
            if search and search not in product.name.lower() and search not in product.description.lower():
                return False
            return True

        return sorted(self._products.find(matches), key=lambda p: (p.category, p.name))
