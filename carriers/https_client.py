from __future__ import annotations
import os
from typing import Any, Dict, Union
import requests

class HTTPSClient:
    """Client for the HTTPS harness endpoints.

    ``verify`` is passed straight to requests: ``True`` for the system trust
    store, ``False`` to skip verification, or the path of an issued
    certificate to trust it out of band.
    """

    def __init__(self, base_url: str, verify: Union[bool, str] = True, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.verify = verify
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return self.base_url + "/" + path.lstrip("/")

    def get(self, path: str = "/") -> str:
        r = requests.get(self._url(path), verify=self.verify, timeout=self.timeout)
        r.raise_for_status()
        return r.text

    def post_json(self, path: str, data: Dict[str, Any]) -> str:
        r = requests.post(self._url(path), json=data, verify=self.verify, timeout=self.timeout)
        r.raise_for_status()
        return r.text

    def post_file(self, path: str, field: str, file_path: str) -> str:
        with open(file_path, "rb") as f:
            files = {field: (os.path.basename(file_path), f)}
            r = requests.post(self._url(path), files=files, verify=self.verify, timeout=self.timeout)
        r.raise_for_status()
        return r.text
