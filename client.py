from __future__ import annotations
import argparse
from typing import Callable, List, Tuple

import requests
import urllib3

from common import CLIENT_TIMEOUT, DEFAULT_UPLOAD_FILE, DEFAULT_URL, UPLOAD_FIELD
from carriers.https_client import HTTPSClient

def build_requests(client: HTTPSClient, upload_file: str) -> List[Tuple[str, Callable[[], str]]]:
    return [
        ("GET", lambda: client.get("/")),
        ("POST", lambda: client.post_json("/postjson", {"message": "Hello, server!"})),
        ("POST", lambda: client.post_file("/upload", UPLOAD_FIELD, upload_file)),
    ]

def run(client: HTTPSClient, upload_file: str) -> int:
    """Run every request in order; return how many failed."""
    failures = 0
    for method, call in build_requests(client, upload_file):
        try:
            body = call()
        except (requests.RequestException, OSError) as e:
            print(f"Error making {method} request: {e}")
            failures += 1
            continue
        print(f"{method} response: {body}")
    return failures

def main():
    apg = argparse.ArgumentParser()
    apg.add_argument("--url", default=DEFAULT_URL)
    apg.add_argument("--ca-cert", default=None, help="Trust this certificate (e.g. the issued cert.pem)")
    apg.add_argument("--insecure", action="store_true", help="Skip TLS verification")
    apg.add_argument("--upload-file", default=DEFAULT_UPLOAD_FILE)
    apg.add_argument("--timeout", type=float, default=CLIENT_TIMEOUT)
    args = apg.parse_args()

    if args.insecure:
        verify = False
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    else:
        verify = args.ca_cert or True

    client = HTTPSClient(args.url, verify=verify, timeout=args.timeout)
    failures = run(client, args.upload_file)
    raise SystemExit(1 if failures else 0)

if __name__ == "__main__":
    main()
