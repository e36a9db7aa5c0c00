"""CartZ storefront management CLI.

Usage:
    python src/manage.py setup-db                  # Create tables on SQL providers
    python src/manage.py drop-db                   # Drop them again
    python src/manage.py seed-products [FILE]      # Load products (JSON list) or the sample set
    python src/manage.py issue-token USER_ID [--email E] [--admin]
"""

import argparse
import json
import sys

SAMPLE_PRODUCTS = [
    {"name": "Premium Wireless Headphones", "price": 299.99, "stock": 50},
    {"name": "Smart Fitness Watch", "price": 199.99, "stock": 30},
    {"name": "Designer Leather Jacket", "price": 449.99, "stock": 15},
    {"name": "Organic Coffee Beans", "price": 24.99, "stock": 100},
]


def _domain():
    from storefront.domain import storefront

    storefront.init()
    return storefront


def setup_database():
    from storefront.utils.db import setup_db

    touched = setup_db(_domain())
    print(f"Schema ready on: {', '.join(touched) or 'no SQL providers'}")


def drop_database():
    from storefront.utils.db import drop_db

    touched = drop_db(_domain())
    print(f"Schema dropped on: {', '.join(touched) or 'no SQL providers'}")


def load_seed(path=None):
    """Read a JSON list of products, or fall back to the built-in samples."""
    if not path:
        return SAMPLE_PRODUCTS
    with open(path) as handle:
        return json.load(handle)


def create_products(storefront, products):
    """Create catalogue products on an initialized domain. Returns their ids."""
    from storefront.catalogue.creation import CreateProduct

    ids = []
    with storefront.domain_context():
        for data in products:
            product_id = storefront.process(
                CreateProduct(
                    name=data["name"],
                    price=data["price"],
                    stock=data.get("stock", 0),
                    images=json.dumps(data.get("images", [])),
                ),
                asynchronous=False,
            )
            ids.append(product_id)
            print(f"  {data['name']}: {product_id}")
    return ids


def seed_products(path=None):
    ids = create_products(_domain(), load_seed(path))
    print(f"Seeded {len(ids)} products.")
    return ids


def issue_token(user_id, email=None, admin=False):
    from storefront.api.auth import create_token

    token = create_token(user_id, email=email, roles=["admin"] if admin else [])
    print(token)
    return token


def main(argv=None):
    parser = argparse.ArgumentParser(description="CartZ storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    seed_parser = subparsers.add_parser("seed-products", help="Load catalogue products")
    seed_parser.add_argument("file", nargs="?", help="JSON file with a list of products")

    token_parser = subparsers.add_parser("issue-token", help="Print a bearer token for local testing")
    token_parser.add_argument("user_id")
    token_parser.add_argument("--email")
    token_parser.add_argument("--admin", action="store_true")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "seed-products":
        seed_products(args.file)
    elif args.command == "issue-token":
        issue_token(args.user_id, email=args.email, admin=args.admin)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
