"""A small Kubernetes REST client covering the resources the tool works with."""

from __future__ import annotations

import base64
import binascii
import tempfile
from pathlib import Path
from typing import Any

import requests
import yaml

DEFAULT_KUBECONFIG = Path.home() / ".kube" / "config"
DEFAULT_TIMEOUT = 60.0


class KubeError(Exception):
    """A request to the API server, or loading its configuration, failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class NotFoundError(KubeError):
    """The requested object does not exist."""


class KubeClient:
    """Talks JSON to a Kubernetes API server."""

    def __init__(
        self,
        server: str,
        token: str | None = None,
        ca_file: str | None = None,
        verify: bool = True,
        client_cert: str | tuple[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.server = server.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["Accept"] = "application/json"
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        self.session.verify = ca_file if (ca_file and verify) else verify
        if client_cert:
            self.session.cert = client_cert

    def _request(self, method: str, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        try:
            resp = self.session.request(method, self.server + path, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise KubeError(f"{method} {path}: {exc}") from exc
        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = None
        if resp.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            error = NotFoundError if resp.status_code == 404 else KubeError
            raise error(str(message or resp.text.strip() or resp.status_code), resp.status_code)
        if body is None:
            raise KubeError(f"{method} {path}: invalid JSON response")
        return body

    def list(self, path: str) -> list[dict[str, Any]]:
        """Return every item of a list endpoint, following continuation tokens."""
        items: list[dict[str, Any]] = []
        params = None
        while True:
            body = self._request("GET", path, params)
            items.extend(body.get("items") or [])
            token = (body.get("metadata") or {}).get("continue")
            if not token:
                return items
            params = {"continue": token}

    def get(self, path: str) -> dict[str, Any]:
        return self._request("GET", path)

    def delete(self, path: str) -> dict[str, Any]:
        return self._request("DELETE", path)

    def list_namespaces(self) -> list[dict[str, Any]]:
        return self.list("/api/v1/namespaces")

    def list_storage_classes(self) -> list[dict[str, Any]]:
        return self.list("/apis/storage.k8s.io/v1/storageclasses")

    def list_persistent_volumes(self) -> list[dict[str, Any]]:
        return self.list("/api/v1/persistentvolumes")

    def list_nodes(self) -> list[dict[str, Any]]:
        return self.list("/api/v1/nodes")

    def list_pods(self) -> list[dict[str, Any]]:
        return self.list("/api/v1/pods")

    def list_deployments(self) -> list[dict[str, Any]]:
        return self.list("/apis/apps/v1/deployments")

    def list_daemon_sets(self) -> list[dict[str, Any]]:
        return self.list("/apis/apps/v1/daemonsets")

    def list_stateful_sets(self) -> list[dict[str, Any]]:
        return self.list("/apis/apps/v1/statefulsets")

    def list_cron_jobs(self) -> list[dict[str, Any]]:
        return self.list("/apis/batch/v1/cronjobs")

    def list_jobs(self) -> list[dict[str, Any]]:
        return self.list("/apis/batch/v1/jobs")

    def list_persistent_volume_claims(self) -> list[dict[str, Any]]:
        return self.list("/api/v1/persistentvolumeclaims")

    def get_persistent_volume_claim(self, namespace: str, name: str) -> dict[str, Any]:
        return self.get(f"/api/v1/namespaces/{namespace}/persistentvolumeclaims/{name}")

    def delete_storage_class(self, name: str) -> dict[str, Any]:
        return self.delete(f"/apis/storage.k8s.io/v1/storageclasses/{name}")

    def delete_persistent_volume(self, name: str) -> dict[str, Any]:
        return self.delete(f"/api/v1/persistentvolumes/{name}")


def _named(entries: Any, name: Any, field: str) -> dict[str, Any]:
    for entry in entries or ():
        if entry.get("name") == name:
            return entry.get(field) or {}
    raise KubeError(f"kubeconfig has no {field} named {name!r}")


def _material(section: dict[str, Any], field: str, base: Path) -> str | None:
    """Resolve a file reference or inline base64 data to a file path."""
    data = section.get(f"{field}-data")
    if data:
        try:
            raw = base64.b64decode(data)
        except (binascii.Error, ValueError) as exc:
            raise KubeError(f"kubeconfig field {field}-data is not valid base64") from exc
        with tempfile.NamedTemporaryFile(prefix="kube-", suffix=".pem", delete=False) as handle:
            handle.write(raw)
        return handle.name
    ref = section.get(field)
    return str(base / ref) if ref else None


def load_kubeconfig(path: str | Path | None = None) -> dict[str, Any]:
    """Read a kubeconfig file and return KubeClient arguments for its current context."""
    config_path = Path(path) if path else DEFAULT_KUBECONFIG
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise KubeError(f"cannot load kubeconfig {config_path}: {exc}") from exc

    context_name = data.get("current-context")
    if not context_name:
        raise KubeError("kubeconfig has no current-context")
    context = _named(data.get("contexts"), context_name, "context")
    cluster = _named(data.get("clusters"), context.get("cluster"), "cluster")
    user = _named(data.get("users"), context["user"], "user") if context.get("user") else {}
    if not cluster.get("server"):
        raise KubeError(f"cluster {context.get('cluster')!r} has no server")

    base = config_path.parent
    token = user.get("token")
    if not token and user.get("tokenFile"):
        try:
            token = (base / user["tokenFile"]).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise KubeError(f"cannot read token file: {exc}") from exc

    cert = _material(user, "client-certificate", base)
    key = _material(user, "client-key", base)
    return {
        "server": cluster["server"],
        "token": token,
        "ca_file": _material(cluster, "certificate-authority", base),
        "verify": not cluster.get("insecure-skip-tls-verify", False),
        "client_cert": (cert, key) if cert and key else cert,
    }


def new_client(config_path: str | Path | None = None) -> KubeClient:
    """Build a client from a kubeconfig and check that the server answers."""
    client = KubeClient(**load_kubeconfig(config_path))
    try:
        client.list_namespaces()
    except KubeError as exc:
        raise KubeError(f"can't create clientset: {exc}", exc.status) from exc
    return client