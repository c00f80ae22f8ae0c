#!/usr/bin/env python3
"""
Basic usage examples for the AllPlayers Python client library.

Set ALLPLAYERS_API_HOST, ALLPLAYERS_STORE_HOST, ALLPLAYERS_AGENT and
ALLPLAYERS_KEY_FILE before running.
"""

import logging
import os
import sys

from allplayers import (
    ALL_PAGES,
    AllPlayersError,
    BadResponseError,
    NotFoundError,
    StoreClient,
    hmac_factory,
    services,
)


def main():
    """Run basic usage examples."""

    api_host = os.environ.get("ALLPLAYERS_API_HOST", "https://www.allplayers.com")
    store_host = os.environ.get("ALLPLAYERS_STORE_HOST", "https://store.allplayers.com")
    agent = os.environ.get("ALLPLAYERS_AGENT")
    key_file = os.environ.get("ALLPLAYERS_KEY_FILE")

    if not agent or not key_file:
        print("Set ALLPLAYERS_AGENT and ALLPLAYERS_KEY_FILE first.")
        sys.exit(1)

    with open(key_file) as f:
        private_key = f.read()

    print("=== AllPlayers Python Client Basic Usage Examples ===\n")

    print("1. Creating signed client...")
    client = hmac_factory(api_host, agent, private_key)
    print(f"   Client created for: {client.url_prefix}")
    print(f"   Agent: {agent}\n")

    try:
        print("2. Listing every group...")
        groups = client.groups_index(page=ALL_PAGES, pagesize=50)
        print(f"   ✓ {len(groups)} groups\n")

        print("3. Looking up a user by email...")
        try:
            user = services.get_user_by_email(client, "nobody@example.com")
            print(f"   ✓ Found {user.first_name} {user.last_name} ({user.uuid})")
        except NotFoundError as e:
            print(f"   ✓ {e}")
        print()

        print("4. Handling API errors...")
        try:
            client.group_get("00000000-0000-0000-0000-000000000000")
        except BadResponseError as e:
            print(f"   ✓ HTTP {e.status_code}: {e.payload}")
        print()

        print("5. Listing store products of the first group...")
        with StoreClient(store_host) as store:
            store.set_credentials(agent, private_key)
            if groups:
                products = store.group_store_products_index(groups[0]['uuid'])
                for product in products:
                    print(f"   - {product.title} ({product.uuid})")
                print(f"   Store page: {store.group_store_url(groups[0]['uuid'])}")
        print()

        print("=== All Examples Completed Successfully! ===")

    except AllPlayersError as e:
        print(f"AllPlayers Client Error: {e}")
        sys.exit(1)
    finally:
        client.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG if os.environ.get("DEBUG") else logging.INFO)
    main()
