import logging
import zipfile

import pytest
import responses

from devopstool.cli import build_parser, main

SERVER = "https://k8s.example.com"

KUBECONFIG = f"""\
apiVersion: v1
kind: Config
current-context: test
contexts:
- name: test
  context:
    cluster: c
    user: u
clusters:
- name: c
  cluster:
    server: {SERVER}
users:
- name: u
  user:
    token: token
"""

LIST_PATHS = [
    "/api/v1/nodes",
    "/api/v1/pods",
    "/apis/apps/v1/deployments",
    "/apis/apps/v1/daemonsets",
    "/apis/apps/v1/statefulsets",
    "/apis/batch/v1/cronjobs",
    "/apis/batch/v1/jobs",
    "/api/v1/persistentvolumeclaims",
]


@pytest.fixture
def kubeconfig(tmp_path):
    path = tmp_path / "config"
    path.write_text(KUBECONFIG, encoding="utf-8")
    return str(path)


@pytest.fixture
def api():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def register_cluster(api, pvs=()):
    api.add(responses.GET, SERVER + "/api/v1/namespaces",
            json={"items": [{"metadata": {"name": "ns1", "annotations": {"dophin/storage": "fast"}}}]})
    api.add(responses.GET, SERVER + "/apis/storage.k8s.io/v1/storageclasses",
            json={"items": [{"metadata": {"name": "fast"}, "provisioner": "prov"}]})
    api.add(responses.GET, SERVER + "/api/v1/persistentvolumes", json={"items": list(pvs)})
    for path in LIST_PATHS:
        api.add(responses.GET, SERVER + path, json={"items": []})


def test_get_pv_to_file(api, kubeconfig, tmp_path, capsys):
    register_cluster(api, [{"metadata": {"name": "pv1"}, "spec": {"nfs": {"server": "nfs.example.com", "path": "/x"}}}])
    target = tmp_path / "2.xlsx"
    code = main(["--kubeconfig", kubeconfig, "cluster", "get-pv", "--file", str(target)])
    assert code == 0
    assert f"PersistentVolume 数据已写入文件: {target}" in capsys.readouterr().out
    with zipfile.ZipFile(target) as archive:
        assert 'name="PersistentVolumes"' in archive.read("xl/workbook.xml").decode()
        assert "nfs.example.com:/x" in archive.read("xl/worksheets/sheet1.xml").decode()


def test_get_sc_console(api, kubeconfig, capsys):
    register_cluster(api)
    assert main(["--kubeconfig", kubeconfig, "cluster", "get-sc"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("NAME\t")
    assert [c for c in lines[1].split("\t") if c] == ["fast", "prov", "Delete", "ns1,"]
    assert api.calls[0].request.headers["Authorization"] == "Bearer token"


def test_unreachable_cluster_exits_with_error(api, kubeconfig, caplog):
    api.add(responses.GET, SERVER + "/api/v1/namespaces", json={"message": "down"}, status=500)
    with caplog.at_level(logging.ERROR):
        assert main(["--kubeconfig", kubeconfig, "cluster", "get-sc"]) == 1
    assert "can't create clientset" in caplog.text


def test_missing_kubeconfig(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        assert main(["--kubeconfig", str(tmp_path / "none"), "cluster", "get-pv"]) == 1
    assert "Error:" in caplog.text


def test_report_failure_is_logged(api, kubeconfig, caplog):
    api.add(responses.GET, SERVER + "/api/v1/namespaces", json={"items": []})
    api.add(responses.GET, SERVER + "/apis/storage.k8s.io/v1/storageclasses",
            json={"message": "forbidden"}, status=403)
    with caplog.at_level(logging.ERROR):
        assert main(["--kubeconfig", kubeconfig, "cluster", "get-sc"]) == 0
    assert "forbidden" in caplog.text


def test_version(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--version"])
    assert info.value.code == 0
    assert "V1.0.0" in capsys.readouterr().out


def test_no_args_does_nothing(capsys):
    assert main([]) == 0
    assert capsys.readouterr().out == ""


def test_cluster_prints_help(capsys):
    assert main(["cluster"]) == 0
    out = capsys.readouterr().out
    assert "get-sc" in out and "get-pv" in out


def test_get_sc_rejects_arguments():
    with pytest.raises(SystemExit) as info:
        main(["cluster", "get-sc", "extra"])
    assert info.value.code == 2


def test_parser_file_option():
    args = build_parser().parse_args(["cluster", "get-pv", "-f", "out.xlsx"])
    assert args.file == "out.xlsx"
    assert build_parser().parse_args(["cluster", "get-sc"]).file == ""