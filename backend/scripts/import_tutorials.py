"""CLI script to load tutorial links from a JSON file into the store.
Usage: python scripts/import_tutorials.py FILE.json [--database-url URL]

The file holds a JSON array of objects with `title`, `url` and optional
`description` / `lessonNumber`. Links whose url is already stored are
skipped, so the script can be re-run safely.
"""
import argparse
import json
import pathlib
import sys
from typing import Optional

from learn_api import services
from learn_api.config import Settings
from learn_api.database import Database


def main(path: pathlib.Path, database_url: Optional[str] = None) -> int:
    """Import the links in `path` and print a summary.

    Returns a process exit code: 0 on success, 1 when the file cannot be
    read or is not a JSON array.
    """
    try:
        items = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f'Cannot read {path}: {e}')
        return 1
    if not isinstance(items, list):
        print(f'{path} must contain a JSON array of tutorial links')
        return 1
    with Database(database_url or Settings().DATABASE_URL) as database:
        with database.session() as session:
            result = services.TutorialService(session).import_links(items)
    for err in result['errors']:
        print(f"Item {err['index']} rejected: {err['error']}")
    print(f"Created {result['created']} tutorial links, skipped {result['skipped']}, errors {len(result['errors'])}")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('file', type=pathlib.Path, help='JSON file with tutorial links')
    parser.add_argument('--database-url', help='Override DATABASE_URL')
    args = parser.parse_args()
    sys.exit(main(args.file, database_url=args.database_url))
