import pytest

from cert_issuer import IssuanceRequest, issue
import server_https


@pytest.fixture
def issued_pair(tmp_path):
    """
    A fresh self-signed pair covering localhost and 127.0.0.1.
    """
    return issue(IssuanceRequest(
        hosts="localhost,127.0.0.1",
        cert_path=str(tmp_path / "cert.pem"),
        key_path=str(tmp_path / "key.pem"),
        organization="Test Org",
        valid_days=1,
    ))


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    d = tmp_path / "uploads"
    monkeypatch.setitem(server_https.app.config, "UPLOAD_DIR", str(d))
    return d


@pytest.fixture
def web(upload_dir):
    server_https.app.config["TESTING"] = True
    return server_https.app.test_client()
