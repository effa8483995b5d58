from __future__ import annotations

# Issuance defaults
DEFAULT_HOSTS = "localhost"
DEFAULT_CERT_FILE = "cert.pem"
DEFAULT_KEY_FILE = "key.pem"
DEFAULT_ORG = "Your Organization"
DEFAULT_VALID_DAYS = 365

# HTTPS harness
DEFAULT_LISTEN_HOST = "0.0.0.0"
DEFAULT_PORT = 8443
DEFAULT_URL = f"https://localhost:{DEFAULT_PORT}"
UPLOAD_DIR = "uploads"
UPLOAD_FIELD = "uploadfile"
DEFAULT_UPLOAD_FILE = "testfile.txt"
CLIENT_TIMEOUT = 10.0

# Environment overrides
ENV_HOSTS = "TLS_HOSTS"
ENV_ORG = "TLS_ORG"
ENV_VALID_DAYS = "TLS_VALID_DAYS"
ENV_UPLOAD_DIR = "TLS_UPLOAD_DIR"
