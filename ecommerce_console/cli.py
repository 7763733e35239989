"""
E-Commerce console client.

Command-line access to the back office API: browse the catalog,
inspect sales (current or as of their sale date), record a sale.

Examples:
    ecommerce-console products --search mug --sort-by price
    ecommerce-console sale 12 --historical
    ecommerce-console create-sale --customer-name "Ada" \\
        --customer-email ada@example.com --customer-address "1 Main St" \\
        --item 3:2 --item 5:1
"""

import argparse
import logging
import sys

from ecommerce_console.api_client import ApiResult, ECommerceApiClient


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


def render_table(headers: list[str], rows: list[list]) -> str:
    cells = [[str(value) for value in row] for row in rows]
    widths = [len(header) for header in headers]
    for row in cells:
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(value))

    def line(values):
        return "  ".join(value.ljust(widths[index]) for index, value in enumerate(values)).rstrip()

    output = [line(headers), line(["-" * width for width in widths])]
    output.extend(line(row) for row in cells)
    return "\n".join(output)


def _fail(result: ApiResult) -> int:
    print(f"Error ({result.status_code}): {result.message}", file=sys.stderr)
    return 1


def _print_page_footer(page: dict):
    print()
    print(
        f"Page {page['current_page']} of {page['total_pages']} "
        f"(Total {page['total_count']})"
    )


def parse_item(value: str) -> dict:
    """PRODUCT_ID:QUANTITY -> {"product_id": ..., "quantity": ...}"""
    try:
        product_id, quantity = value.split(":", 1)
        return {"product_id": int(product_id), "quantity": int(quantity)}
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid item '{value}', expected PRODUCT_ID:QUANTITY"
        )


# ---------------- COMMANDS ----------------
def list_products(client: ECommerceApiClient, args) -> int:
    result = client.get_products(
        page=args.page,
        page_size=args.page_size,
        search=args.search,
        category_id=args.category_id,
        sort_by=args.sort_by,
        sort_direction=args.sort_direction,
        include_deleted="true" if args.include_deleted else None,
    )
    if not result.success:
        return _fail(result)

    page = result.data
    if not page["data"]:
        print("No products matched the current filters.")
        return 0

    rows = [
        [
            product["id"],
            product["name"],
            (product.get("category") or {}).get("name", "-"),
            product["price"],
            product["stock"],
            "Yes" if product["is_active"] else "No",
            "Yes" if product["is_deleted"] else "No",
        ]
        for product in page["data"]
    ]
    print(render_table(["ID", "Name", "Category", "Price", "Stock", "Active", "Deleted"], rows))
    _print_page_footer(page)
    return 0


def list_categories(client: ECommerceApiClient, args) -> int:
    result = client.get_categories(search=args.search, page=args.page, page_size=args.page_size)
    if not result.success:
        return _fail(result)

    page = result.data
    rows = [[c["id"], c["name"], c["description"]] for c in page["data"]]
    print(render_table(["ID", "Name", "Description"], rows))
    _print_page_footer(page)
    return 0


def list_sales(client: ECommerceApiClient, args) -> int:
    result = client.get_sales(
        page=args.page,
        page_size=args.page_size,
        customer_name=args.customer_name,
        sort_by=args.sort_by,
        sort_direction=args.sort_direction,
    )
    if not result.success:
        return _fail(result)

    page = result.data
    rows = [
        [sale["id"], sale["sale_date"][:10], sale["customer_name"], len(sale["items"]), sale["total_amount"]]
        for sale in page["data"]
    ]
    print(render_table(["ID", "Date", "Customer", "Items", "Total"], rows))
    _print_page_footer(page)
    return 0


def show_sale(client: ECommerceApiClient, args) -> int:
    result = client.get_sale(args.sale_id, historical=args.historical)
    if not result.success:
        return _fail(result)

    sale = result.data
    print(f"Sale #{sale['id']}  {sale['sale_date']}")
    print(f"Customer: {sale['customer_name']} <{sale['customer_email']}>")
    print(f"Address:  {sale['customer_address']}")
    print()

    rows = [
        [item["product_id"], item["product_name"] or "-", item["quantity"], item["unit_price"], item["line_total"]]
        for item in sale["items"]
    ]
    print(render_table(["Product", "Name", "Qty", "Unit Price", "Line Total"], rows))
    print()
    print(f"Total: {sale['total_amount']}")

    if args.historical and sale.get("excluded_item_count"):
        print(
            f"Note: {sale['excluded_item_count']} line item(s) hidden; their products "
            f"did not exist on the sale date. Shown items total {sale['items_total']}."
        )
    return 0


def create_sale(client: ECommerceApiClient, args) -> int:
    payload = {
        "customer_name": args.customer_name,
        "customer_email": args.customer_email,
        "customer_address": args.customer_address,
        "items": args.item,
    }
    if args.sale_date:
        payload["sale_date"] = args.sale_date

    result = client.create_sale(payload)
    if not result.success:
        return _fail(result)

    sale = result.data
    print(f"Sale #{sale['id']} created. Total: {sale['total_amount']}")
    return 0


def delete_product(client: ECommerceApiClient, args) -> int:
    result = client.delete_product(args.product_id)
    if not result.success:
        return _fail(result)
    print(f"Product {args.product_id} deleted.")
    return 0


def restore_product(client: ECommerceApiClient, args) -> int:
    result = client.restore_product(args.product_id)
    if not result.success:
        return _fail(result)
    print(f"Product {args.product_id} restored.")
    return 0


def sales_summary(client: ECommerceApiClient, args) -> int:
    result = client.get_sales_summary()
    if not result.success:
        return _fail(result)

    summary = result.data
    rows = [
        [
            row["product_name"],
            row["category_name"],
            row["total_quantity_sold"],
            row["total_revenue"],
            row["last_sale_date"][:10],
        ]
        for row in summary["results"]
    ]
    print(render_table(["Product", "Category", "Sold", "Revenue", "Last Sale"], rows))
    print()
    print(f"Total revenue: {summary['total_revenue']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ecommerce-console",
        description="Console client for the e-commerce back office API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--base-url", help="API base URL (defaults to API_BASE_URL)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_paging(sub):
        sub.add_argument("--page", type=int, default=1)
        sub.add_argument("--page-size", type=int, default=10)

    products = subparsers.add_parser("products", help="List products")
    add_paging(products)
    products.add_argument("--search")
    products.add_argument("--category-id", type=int)
    products.add_argument("--sort-by", choices=["name", "price", "stock", "createdat", "category"])
    products.add_argument("--sort-direction", choices=["asc", "desc"])
    products.add_argument("--include-deleted", action="store_true")
    products.set_defaults(handler=list_products)

    categories = subparsers.add_parser("categories", help="List categories")
    add_paging(categories)
    categories.add_argument("--search")
    categories.set_defaults(handler=list_categories)

    sales = subparsers.add_parser("sales", help="List sales")
    add_paging(sales)
    sales.add_argument("--customer-name")
    sales.add_argument("--sort-by", choices=["saledate", "totalamount", "customername"])
    sales.add_argument("--sort-direction", choices=["asc", "desc"])
    sales.set_defaults(handler=list_sales)

    sale = subparsers.add_parser("sale", help="Show one sale")
    sale.add_argument("sale_id", type=int)
    sale.add_argument(
        "--historical",
        action="store_true",
        help="Show line items as they were on the sale date",
    )
    sale.set_defaults(handler=show_sale)

    create = subparsers.add_parser("create-sale", help="Record a sale")
    create.add_argument("--customer-name", required=True)
    create.add_argument("--customer-email", required=True)
    create.add_argument("--customer-address", required=True)
    create.add_argument("--sale-date", help="ISO timestamp, defaults to now")
    create.add_argument(
        "--item",
        type=parse_item,
        action="append",
        required=True,
        metavar="PRODUCT_ID:QUANTITY",
    )
    create.set_defaults(handler=create_sale)

    delete = subparsers.add_parser("delete-product", help="Soft-delete a product")
    delete.add_argument("product_id", type=int)
    delete.set_defaults(handler=delete_product)

    restore = subparsers.add_parser("restore-product", help="Restore a deleted product")
    restore.add_argument("product_id", type=int)
    restore.set_defaults(handler=restore_product)

    summary = subparsers.add_parser("summary", help="Sales summary per product")
    summary.set_defaults(handler=sales_summary)

    return parser


def main(argv: list[str] | None = None, client: ECommerceApiClient | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    client = client or ECommerceApiClient(base_url=args.base_url, timeout=args.timeout)
    return args.handler(client, args)


if __name__ == "__main__":
    sys.exit(main())
