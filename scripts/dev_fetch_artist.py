#!/usr/bin/env python3
"""Manual script to test the reference-service artist lookup."""

import sys

from catalog_sync.config import load_settings
from catalog_sync.reference.client import ReferenceServiceClient

if __name__ == "__main__":
    name = sys.argv[1] if len(sys.argv) > 1 else "Mammoth"
    with ReferenceServiceClient.from_settings(load_settings()) as client:
        match = client.search_artist(name)
        print(match)
        if match is not None:
            print(client.fetch_artist_detail(match.id))
            print(f"{len(client.list_release_groups(match.id))} release groups")
