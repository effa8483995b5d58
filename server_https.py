from __future__ import annotations
import argparse, os, sys
from pathlib import Path
from flask import Flask, request
from werkzeug.utils import secure_filename

from common import (
    DEFAULT_CERT_FILE, DEFAULT_HOSTS, DEFAULT_KEY_FILE, DEFAULT_LISTEN_HOST, DEFAULT_ORG,
    DEFAULT_PORT, DEFAULT_VALID_DAYS, ENV_HOSTS, ENV_ORG, ENV_UPLOAD_DIR, ENV_VALID_DAYS, UPLOAD_DIR,
    UPLOAD_FIELD,
)
from cert_issuer import IssuanceError, IssuanceRequest, issue

app = Flask(__name__)
app.config["UPLOAD_DIR"] = os.environ.get(ENV_UPLOAD_DIR, UPLOAD_DIR)

@app.get("/")
def home():
    return "Welcome to the HTTPS server!"

@app.post("/postjson")
def post_json():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return "Invalid JSON body", 400
    message = data.get("message", "")
    if not isinstance(message, str):
        return "Field 'message' must be a string", 400
    return f"Received JSON: {message}"

@app.post("/upload")
def upload():
    f = request.files.get(UPLOAD_FIELD)
    if f is None:
        return f"Missing form field '{UPLOAD_FIELD}'", 400
    name = secure_filename(f.filename or "")
    if not name:
        return "Invalid file name", 400

    upload_dir = Path(app.config["UPLOAD_DIR"])
    try:
        upload_dir.mkdir(parents=True, exist_ok=True)
        f.save(upload_dir / name)
    except OSError as e:
        app.logger.error("upload of %s failed: %s", name, e)
        return str(e), 500

    app.logger.info("stored upload %s", upload_dir / name)
    return f"File uploaded successfully: {name}"

def ensure_certificate(cert: str, key: str, hosts: str,
                       organization: str | None = None, valid_days: int | None = None) -> None:
    """Issue a fresh self-signed pair unless both files already exist.

    Organization and validity fall back to TLS_ORG / TLS_VALID_DAYS, then to
    the defaults in common.py.
    """
    if os.path.exists(cert) and os.path.exists(key):
        return
    if organization is None:
        organization = os.environ.get(ENV_ORG, DEFAULT_ORG)
    if valid_days is None:
        valid_days = int(os.environ.get(ENV_VALID_DAYS, DEFAULT_VALID_DAYS))
    issued = issue(IssuanceRequest(hosts=hosts, cert_path=cert, key_path=key,
                                   organization=organization, valid_days=valid_days))
    print(f"[INFO] Issued self-signed certificate for {hosts} (serial {issued.serial:x})")

def main():
    apg = argparse.ArgumentParser()
    apg.add_argument("--host", default=DEFAULT_LISTEN_HOST)
    apg.add_argument("--port", type=int, default=DEFAULT_PORT)
    apg.add_argument("--cert", default=DEFAULT_CERT_FILE)
    apg.add_argument("--key", default=DEFAULT_KEY_FILE)
    apg.add_argument("--upload-dir", default=app.config["UPLOAD_DIR"])
    apg.add_argument("--bootstrap", action="store_true",
                     help="Issue a self-signed certificate if --cert or --key is missing")
    apg.add_argument("--hosts", default=os.environ.get(ENV_HOSTS, DEFAULT_HOSTS),
                     help="Hosts for a bootstrapped certificate")
    apg.add_argument("--org", default=None, help="Organization for a bootstrapped certificate")
    apg.add_argument("--days", type=int, default=None, help="Validity days for a bootstrapped certificate")
    args = apg.parse_args()

    if args.bootstrap:
        try:
            ensure_certificate(args.cert, args.key, args.hosts, args.org, args.days)
        except IssuanceError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            sys.exit(1)

    app.config["UPLOAD_DIR"] = args.upload_dir

    print(f"[HTTPS server] https://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, ssl_context=(args.cert, args.key), threaded=True)

if __name__ == "__main__":
    main()
