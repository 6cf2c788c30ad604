import base64
from pathlib import Path

import pytest
import requests
import responses
from responses import matchers

from devopstool.kubeclient import KubeClient, KubeError, NotFoundError, load_kubeconfig, new_client

SERVER = "https://kube.example.com:6443"


def _client():
    return KubeClient(SERVER, token="token")


def test_list_namespaces_returns_items_and_sends_token():
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            SERVER + "/api/v1/namespaces",
            json={"items": [{"metadata": {"name": "default"}}]},
        )
        items = _client().list_namespaces()
        assert items == [{"metadata": {"name": "default"}}]
        assert rsps.calls[0].request.headers["Authorization"] == "Bearer token"


def test_list_follows_continue_token():
    url = SERVER + "/apis/storage.k8s.io/v1/storageclasses"
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            url,
            json={"metadata": {"continue": "next"}, "items": [{"metadata": {"name": "a"}}]},
            match=[matchers.query_param_matcher({})],
        )
        rsps.add(
            responses.GET,
            url,
            json={"metadata": {}, "items": [{"metadata": {"name": "b"}}]},
            match=[matchers.query_param_matcher({"continue": "next"})],
        )
        names = [item["metadata"]["name"] for item in _client().list_storage_classes()]
    assert names == ["a", "b"]


@pytest.mark.parametrize(
    "method_name, path",
    [
        ("list_persistent_volumes", "/api/v1/persistentvolumes"),
        ("list_nodes", "/api/v1/nodes"),
        ("list_pods", "/api/v1/pods"),
        ("list_deployments", "/apis/apps/v1/deployments"),
        ("list_daemon_sets", "/apis/apps/v1/daemonsets"),
        ("list_stateful_sets", "/apis/apps/v1/statefulsets"),
        ("list_cron_jobs", "/apis/batch/v1/cronjobs"),
        ("list_jobs", "/apis/batch/v1/jobs"),
        ("list_persistent_volume_claims", "/api/v1/persistentvolumeclaims"),
    ],
)
def test_list_endpoints(method_name, path):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + path, json={"items": [{"metadata": {"name": path}}]})
        items = getattr(_client(), method_name)()
    assert items == [{"metadata": {"name": path}}]


def test_get_pvc_not_found_raises_not_found():
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            SERVER + "/api/v1/namespaces/ns1/persistentvolumeclaims/data",
            status=404,
            json={"kind": "Status", "message": 'persistentvolumeclaims "data" not found'},
        )
        with pytest.raises(NotFoundError) as info:
            _client().get_persistent_volume_claim("ns1", "data")
    assert info.value.status == 404
    assert str(info.value) == 'persistentvolumeclaims "data" not found'


def test_server_error_is_kube_error_not_not_found():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "/api/v1/nodes", status=500, body="boom")
        with pytest.raises(KubeError) as info:
            _client().list_nodes()
    assert not isinstance(info.value, NotFoundError)
    assert info.value.status == 500
    assert "boom" in str(info.value)


def test_connection_error_becomes_kube_error():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "/api/v1/pods", body=requests.ConnectionError("down"))
        with pytest.raises(KubeError, match="down"):
            _client().list_pods()


def test_delete_calls_delete_endpoints():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.DELETE, SERVER + "/api/v1/persistentvolumes/pv1", json={"status": "Success"})
        rsps.add(responses.DELETE, SERVER + "/apis/storage.k8s.io/v1/storageclasses/sc1", body="")
        client = _client()
        assert client.delete_persistent_volume("pv1") == {"status": "Success"}
        assert client.delete_storage_class("sc1") == {}
        assert [call.request.method for call in rsps.calls] == ["DELETE", "DELETE"]


def _write_config(tmp_path: Path, cluster: dict, user: dict) -> Path:
    import yaml

    config = {
        "apiVersion": "v1",
        "kind": "Config",
        "current-context": "ctx",
        "contexts": [{"name": "ctx", "context": {"cluster": "c1", "user": "u1"}}],
        "clusters": [{"name": "c1", "cluster": cluster}],
        "users": [{"name": "u1", "user": user}],
    }
    path = tmp_path / "config"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


def test_load_kubeconfig_decodes_inline_ca(tmp_path):
    ca_bytes = b"-----BEGIN CERTIFICATE-----\nplaceholder\n-----END CERTIFICATE-----\n"
    path = _write_config(
        tmp_path,
        {"server": SERVER, "certificate-authority-data": base64.b64encode(ca_bytes).decode()},
        {"token": "token"},
    )
    settings = load_kubeconfig(path)
    assert settings["server"] == SERVER
    assert settings["token"] == "token"
    assert settings["verify"] is True
    assert settings["client_cert"] is None
    assert Path(settings["ca_file"]).read_bytes() == ca_bytes


def test_load_kubeconfig_relative_files_and_insecure(tmp_path):
    path = _write_config(
        tmp_path,
        {"server": SERVER, "insecure-skip-tls-verify": True},
        {"client-certificate": "client.crt", "client-key": "client.key"},
    )
    settings = load_kubeconfig(path)
    assert settings["verify"] is False
    assert settings["client_cert"] == (str(tmp_path / "client.crt"), str(tmp_path / "client.key"))


def test_load_kubeconfig_missing_context(tmp_path):
    path = tmp_path / "config"
    path.write_text("apiVersion: v1\nkind: Config\n", encoding="utf-8")
    with pytest.raises(KubeError, match="current-context"):
        load_kubeconfig(path)


def test_load_kubeconfig_missing_file(tmp_path):
    with pytest.raises(KubeError):
        load_kubeconfig(tmp_path / "absent")


def test_new_client_checks_server(tmp_path):
    path = _write_config(tmp_path, {"server": SERVER}, {"token": "token"})
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "/api/v1/namespaces", json={"items": []})
        client = new_client(path)
    assert client.server == SERVER


def test_new_client_fails_when_unauthorized(tmp_path):
    path = _write_config(tmp_path, {"server": SERVER}, {"token": "token"})
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "/api/v1/namespaces", status=401, json={"message": "Unauthorized"})
        with pytest.raises(KubeError, match="can't create clientset") as info:
            new_client(path)
    assert info.value.status == 401