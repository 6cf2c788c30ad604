"""Removal of unused StorageClasses and PersistentVolumes, with YAML backups."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from devopstool.kubeclient import KubeError, NotFoundError

DEFAULT_BASE_DIR = "/data/storage-clean"

_API_VERSIONS = {
    "StorageClass": "storage.k8s.io/v1",
    "PersistentVolume": "v1",
}


def _name(obj: dict[str, Any]) -> str:
    return (obj.get("metadata") or {}).get("name", "")


class StorageCleaner:
    """Deletes StorageClasses no PV refers to and PVs no claim holds."""

    def __init__(self, client: Any, base_dir: str | Path = DEFAULT_BASE_DIR) -> None:
        self.client = client
        self.base_dir = Path(base_dir)
        stamp = datetime.now().strftime("%Y-%m-%d-%H:%M:%S")
        self.sc_backup_dir = Path(f"{self.base_dir / 'sc'}{stamp}")
        self.pv_backup_dir = Path(f"{self.base_dir / 'pv'}{stamp}")
        self.log_file = self.base_dir / "clean.log"

    def run(self) -> None:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OSError(f"创建备份目录失败{self.base_dir}: {exc}") from exc
        self.log("开始执行存储资源清理任务...")
        try:
            self.delete_unused_storage_classes()
        except KubeError as exc:
            self.log(f"清理 StorageClass 出错: {exc}")
            raise
        try:
            self.cleanup_persistent_volumes()
        except KubeError as exc:
            self.log(f"清理 PV 出错: {exc}")
            raise
        self.log("存储资源清理完成。")

    def delete_unused_storage_classes(self) -> None:
        storage_classes = self.client.list_storage_classes()
        pvs = self.client.list_persistent_volumes()
        used = {
            pv.get("spec", {}).get("storageClassName")
            for pv in pvs
            if pv.get("spec", {}).get("storageClassName")
        }
        for sc in storage_classes:
            name = _name(sc)
            if name in used:
                continue
            self.log(f"准备删除未使用的 StorageClass: {name}")
            try:
                self.backup_resource(sc, "StorageClass", self.sc_backup_dir)
            except (OSError, ValueError, yaml.YAMLError) as exc:
                self.log(f"备份 StorageClass {name} 失败: {exc}")
            try:
                self.client.delete_storage_class(name)
            except KubeError as exc:
                self.log(f"删除 StorageClass {name} 失败: {exc}")
                continue
            self.log(f"成功删除并备份 StorageClass: {name}")

    def _remove_pv(self, pv: dict[str, Any]) -> None:
        name = _name(pv)
        try:
            self.backup_resource(pv, "PersistentVolume", self.pv_backup_dir)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            self.log(f"备份 PV {name} 失败: {exc}")
        try:
            self.client.delete_persistent_volume(name)
        except KubeError as exc:
            self.log(f"删除 PV {name} 失败: {exc}")
        else:
            self.log(f"成功删除并备份 PV: {name}")

    def cleanup_persistent_volumes(self) -> None:
        for pv in self.client.list_persistent_volumes():
            name = _name(pv)
            phase = (pv.get("status") or {}).get("phase", "")
            if phase == "Available":
                self.log(f"PV {name} 状态为 Available，准备删除并备份")
                self._remove_pv(pv)
            elif phase == "Released":
                self._handle_released(pv, name)
            else:
                self.log(f"PV {name} 状态为 {phase}，跳过删除")

    def _handle_released(self, pv: dict[str, Any], name: str) -> None:
        ref = (pv.get("spec") or {}).get("claimRef")
        if ref is None:
            self.log(f"PV {name} 状态为 Released，但无 ClaimRef，直接删除")
            self._remove_pv(pv)
            return
        namespace = ref.get("namespace", "")
        claim = ref.get("name", "")
        try:
            pvc = self.client.get_persistent_volume_claim(namespace, claim)
        except NotFoundError:
            self.log(f"PVC {namespace}/{claim} 不存在，准备删除 PV {name}")
            self._remove_pv(pv)
            return
        except KubeError as exc:
            self.log(f"获取 PVC {namespace}/{claim} 异常: {exc}")
            return
        ref_uid = ref.get("uid", "")
        if ref_uid and ref_uid != (pvc.get("metadata") or {}).get("uid", ""):
            self.log(f"PVC {namespace}/{claim} 存在，但 UID 不匹配，准备删除 PV {name}")
            self._remove_pv(pv)
        else:
            self.log(f"PV {name} 正在被 PVC 使用，跳过删除")

    def backup_resource(self, obj: dict[str, Any], kind: str, backup_dir: str | Path) -> Path:
        """Write obj as YAML to backup_dir/<kind>-<name>.yaml and return the path."""
        document = dict(obj)
        api_version = document.get("apiVersion") or _API_VERSIONS.get(kind)
        if not api_version:
            raise ValueError(f"无法识别资源类型: {kind}")
        document["apiVersion"] = api_version
        document["kind"] = kind
        name = _name(document)
        if not name:
            raise ValueError("获取对象元数据失败: 缺少 metadata.name")
        directory = Path(backup_dir)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{kind}-{name}.yaml"
        with path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(document, handle, sort_keys=True, allow_unicode=True, default_flow_style=False)
        return path

    def log(self, message: str) -> None:
        stamp = datetime.now().strftime("[%Y-%m-%d %H:%M:%S] ")
        try:
            with self.log_file.open("a", encoding="utf-8") as handle:
                handle.write(f"{stamp}{message}\n")
        except OSError as exc:
            print(f"无法打开日志文件: {exc}", file=sys.stderr)


def clean_storage_resources(client: Any, base_dir: str | Path = DEFAULT_BASE_DIR) -> None:
    """Run a full cleanup pass against the cluster."""
    StorageCleaner(client, base_dir).run()