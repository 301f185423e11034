#!/usr/bin/env python3
"""
Script to set or clear one kiosk setting on a running settings server
Handy for provisioning API keys over ssh without opening the settings panel
"""

import requests
import sys
import os

import settings_store

# Configuration - update this or set the environment variable
API_BASE_URL = os.environ.get('KIOSK_API_URL', 'http://localhost:8080')


def update_setting(key: str, value=None, delete: bool = False) -> bool:
    """Set (or clear, with ``delete``) a single setting"""
    url = f"{API_BASE_URL}/setting"
    headers = {'Content-Type': 'application/json'}

    try:
        if delete:
            print(f"Clearing {key}...")
            response = requests.delete(url, headers=headers, json={'key': key}, timeout=30)
        else:
            print(f"Setting {key}...")
            response = requests.patch(url, headers=headers, json={'key': key, 'value': value}, timeout=30)

        if response.status_code == 200:
            print(f"✓ Success: {key} = {response.json().get(key)!r}")
            return True
        else:
            print(f"✗ Error: HTTP {response.status_code}")
            try:
                error = response.json()
                print(f"  {error.get('error', 'Unknown error')}")
            except ValueError:
                print(f"  {response.text}")
            return False

    except requests.exceptions.RequestException as e:
        print(f"✗ Connection error: {e}")
        return False


def usage():
    print("Usage: python settings_script.py KEY VALUE")
    print("       python settings_script.py --delete KEY")
    print(f"Keys: {', '.join(settings_store.SETTINGS_KEYS)}")


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    delete = False
    if args and args[0] == '--delete':
        delete = True
        args = args[1:]

    if (delete and len(args) != 1) or (not delete and len(args) != 2):
        usage()
        sys.exit(1)

    key = args[0]
    if key not in settings_store.SETTINGS_KEYS:
        print(f"Error: unknown setting '{key}'")
        usage()
        sys.exit(1)

    success = update_setting(key, None if delete else args[1], delete=delete)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
