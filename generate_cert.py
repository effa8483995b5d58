import argparse, logging, os, pathlib, sys

from common import (
    DEFAULT_CERT_FILE, DEFAULT_HOSTS, DEFAULT_KEY_FILE, DEFAULT_ORG, DEFAULT_VALID_DAYS,
    ENV_HOSTS, ENV_ORG, ENV_VALID_DAYS,
)
from cert_issuer import IssuanceError, IssuanceRequest, issue

def main(argv=None):
    ap = argparse.ArgumentParser(description="Generate a self-signed TLS certificate and EC private key")
    ap.add_argument("--hosts", default=os.environ.get(ENV_HOSTS, DEFAULT_HOSTS),
                    help="Comma-separated DNS names and IP addresses to cover")
    ap.add_argument("--cert", default=DEFAULT_CERT_FILE, help="Certificate output path")
    ap.add_argument("--key", default=DEFAULT_KEY_FILE, help="Private key output path")
    ap.add_argument("--org", default=os.environ.get(ENV_ORG, DEFAULT_ORG), help="Subject organization")
    ap.add_argument("--days", type=int, default=int(os.environ.get(ENV_VALID_DAYS, DEFAULT_VALID_DAYS)),
                    help="Validity days")
    ap.add_argument("--mkdir", action="store_true", help="Create missing output directories")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    cert = pathlib.Path(args.cert)
    key = pathlib.Path(args.key)
    if args.mkdir:
        cert.parent.mkdir(parents=True, exist_ok=True)
        key.parent.mkdir(parents=True, exist_ok=True)

    request = IssuanceRequest(hosts=args.hosts, cert_path=str(cert), key_path=str(key),
                              organization=args.org, valid_days=args.days)
    try:
        issued = issue(request)
    except IssuanceError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(f"Generated:\n  {cert}\n  {key}")
    print(f"  serial {issued.serial:x}, valid until {issued.not_after:%Y-%m-%d %H:%M:%S} UTC")
    return 0

if __name__ == "__main__":
    sys.exit(main())
