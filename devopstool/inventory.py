"""Reports on StorageClasses and PersistentVolumes and what uses them."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from typing import Any

from devopstool.tables import format_table, write_xlsx

_COLUMNS = ("NAME", "CAPACITY", "ACCESS MODES", "RECLAIM POLICY", "STATUS", "CLAIM", "STORAGECLASS",
            "TYPE", "LOCATION", "AGE")
SC_HEADER = ("NAME", "PROVISIONER", "RECLAIM POLICY", "NAMESPACE BOUND")
PV_CONSOLE_HEADER = (*_COLUMNS, "NODE_ISEXIST", "BONDPVCISEXIST", "PVCINUSE")
PV_SHEET_HEADER = (*_COLUMNS, "NODEISEXIST", "BONDPVCISEXIST", "PVCINUSE")

_TEMPLATE = ("spec", "template", "spec", "volumes")


def _get(obj: Any, *keys: str) -> Any:
    for key in keys:
        obj = obj.get(key) if isinstance(obj, dict) else None
    return obj


def _name(obj: Any) -> str:
    return _get(obj, "metadata", "name") or ""


def is_pvc_in_volumes(volumes, pvc_name: str) -> bool:
    """Tell whether any volume mounts the named claim."""
    return any(_get(v, "persistentVolumeClaim", "claimName") == pvc_name for v in volumes or ())


def _mounted_in(objects, namespace: str, pvc_name: str, *path: str) -> bool:
    return any(
        _get(obj, "metadata", "namespace") == namespace and is_pvc_in_volumes(_get(obj, *path), pvc_name)
        for obj in objects
    )


def is_pvc_used(namespace, pvc_name, pods, deployments, stateful_sets, daemon_sets, cron_jobs, jobs) -> bool:
    """Tell whether a workload refers to the claim namespace/pvc_name."""
    # A templated claim is named <template>-<statefulset>-<ordinal>; compared in every namespace.
    prefix = pvc_name.rpartition("-")[0]
    return (
        _mounted_in(pods, namespace, pvc_name, "spec", "volumes")
        or _mounted_in(deployments, namespace, pvc_name, *_TEMPLATE)
        or ("-" in pvc_name and any(
            f"{_name(t)}-{_name(sts)}" == prefix
            for sts in stateful_sets for t in _get(sts, "spec", "volumeClaimTemplates") or ()
        ))
        or _mounted_in(daemon_sets, namespace, pvc_name, *_TEMPLATE)
        # Unfinished jobs count whatever their namespace.
        or any(not _get(j, "status", "completionTime") and is_pvc_in_volumes(_get(j, *_TEMPLATE), pvc_name)
               for j in jobs)
        or _mounted_in(cron_jobs, namespace, pvc_name, "spec", "jobTemplate", *_TEMPLATE)
    )


def format_age(seconds: float) -> str:
    """Render a duration rounded to whole seconds, e.g. 1h2m3s."""
    total = int(abs(seconds) + 0.5)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    body = f"{hours}h{minutes}m{secs}s" if hours else f"{minutes}m{secs}s" if minutes else f"{secs}s"
    return ("-" if seconds < 0 and total else "") + body


def storage_class_rows(storage_classes, namespaces) -> list[list[str]]:
    """One row per StorageClass: name, provisioner, reclaim policy, bound namespaces."""
    namespaces = list(namespaces)
    rows = []
    for sc in storage_classes:
        name = _name(sc)
        bound = "".join(
            f"{_name(ns)},"
            for ns in namespaces
            if (annotations := _get(ns, "metadata", "annotations")) is not None
            for entry in (annotations.get("dophin/storage") or "").split(",")
            if entry == name
        )
        rows.append([name, sc.get("provisioner") or "", sc.get("reclaimPolicy") or "Delete", bound])
    return rows


def _source_details(pv: dict[str, Any], node_names: set[str]) -> tuple[str, str, str]:
    spec = pv.get("spec") or {}
    if (local := spec.get("local")) is not None:
        labels = _get(pv, "metadata", "labels") or {}
        pv_type = "shard_local" if labels.get("dolphin.storage/sc-type") == "sig-local" else "local"
        location = node_exists = ""
        for term in _get(spec, "nodeAffinity", "required", "nodeSelectorTerms") or ():
            for req in term.get("matchExpressions") or ():
                values = req.get("values") or []
                if req.get("key") == "kubernetes.io/hostname" and values:
                    location = f"{','.join(values)}:{local.get('path') or ''}"
                    node_exists = "yes" if node_names.intersection(values) else "no"
        return pv_type, location, node_exists
    if (ceph := spec.get("cephfs")) is not None:
        return "ceph", f"{','.join(ceph.get('monitors') or [])}:{ceph.get('path') or ''}", ""
    if (nfs := spec.get("nfs")) is not None:
        return "nfs", f"{nfs.get('server') or ''}:{nfs.get('path') or ''}", ""
    if (host := spec.get("hostPath")) is not None:
        return "hostpath", host.get("path") or "", ""
    return "unknown", "", ""


def persistent_volume_rows(pvs, nodes, pods, deployments, stateful_sets, daemon_sets, cron_jobs, jobs, pvcs,
                           now: datetime | None = None) -> list[list[Any]]:
    """One row per PersistentVolume, in the column order of PV_CONSOLE_HEADER."""
    now = now or datetime.now(timezone.utc)
    node_names = {_name(node) for node in nodes}
    workloads = [list(w) for w in (pods, deployments, stateful_sets, daemon_sets, cron_jobs, jobs)]
    pvcs = list(pvcs)
    rows = []
    for pv in pvs:
        spec = pv.get("spec") or {}
        created = _get(pv, "metadata", "creationTimestamp")
        age = ""
        if created:
            stamp = datetime.fromisoformat(created.replace("Z", "+00:00"))
            stamp = stamp if stamp.tzinfo else stamp.replace(tzinfo=timezone.utc)
            age = format_age((now - stamp).total_seconds())

        claim, bound_exists, in_use = "", False, False
        if (ref := spec.get("claimRef")) is not None:
            namespace, claim_name = ref.get("namespace") or "", ref.get("name") or ""
            claim = f"{ref.get('kind') or ''}/{namespace}/{claim_name}"
            bound_exists = any(
                _get(pvc, "metadata", "namespace") == namespace and _name(pvc) == claim_name
                and (_get(pvc, "metadata", "uid") or "") == (ref.get("uid") or "")
                for pvc in pvcs
            )
            in_use = bound_exists and is_pvc_used(namespace, claim_name, *workloads)

        rows.append([
            _name(pv), _get(spec, "capacity", "storage") or "0", f"[{' '.join(spec.get('accessModes') or [])}]",
            spec.get("persistentVolumeReclaimPolicy") or "", _get(pv, "status", "phase") or "", claim,
            spec.get("storageClassName") or "", *_source_details(pv, node_names)[:2], age,
            _source_details(pv, node_names)[2], bound_exists, in_use,
        ])
    return rows


def _report(out, file_path, sheet, label, console_header, sheet_header, rows) -> None:
    out = sys.stdout if out is None else out
    if not file_path:
        out.write(format_table([console_header, *rows]))
        return
    write_xlsx(file_path, sheet, [sheet_header, *rows])
    out.write(f"{label} 数据已写入文件: {file_path}\n")


def get_storage_class_info(client, file_path=None, out=None) -> None:
    """Print the StorageClass report, or save it as a spreadsheet when file_path is given."""
    rows = storage_class_rows(client.list_storage_classes(), client.list_namespaces())
    _report(out, file_path, "StorageClasses", "StorageClass", SC_HEADER, SC_HEADER, rows)


def get_persistent_volume_info(client, file_path=None, out=None) -> None:
    """Print the PersistentVolume report, or save it as a spreadsheet when file_path is given."""
    pvs, nodes, pods = client.list_persistent_volumes(), client.list_nodes(), client.list_pods()
    deployments, daemon_sets = client.list_deployments(), client.list_daemon_sets()
    stateful_sets, cron_jobs = client.list_stateful_sets(), client.list_cron_jobs()
    jobs, pvcs = client.list_jobs(), client.list_persistent_volume_claims()
    rows = persistent_volume_rows(pvs, nodes, pods, deployments, stateful_sets, daemon_sets, cron_jobs, jobs, pvcs)
    _report(out, file_path, "PersistentVolumes", "PersistentVolume", PV_CONSOLE_HEADER, PV_SHEET_HEADER, rows)