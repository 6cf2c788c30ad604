# devopstool

`devops-tool` is a command-line helper for looking at the storage resources of a
Kubernetes cluster. It talks to the cluster API over HTTPS with the credentials
of the current context in your kubeconfig (`~/.kube/config` by default, or the
file given with `--kubeconfig`). Before running a command it checks that the
server answers by listing namespaces; if that fails, it logs the error and
exits with status 1.

## Installation

```
pip install .
```

## Usage

List every StorageClass, with its provisioner, reclaim policy (`Delete` when
none is set) and the namespaces that name it in their `dophin/storage`
annotation:

```
devops-tool cluster get-sc
```

List every PersistentVolume, with its capacity, access modes, reclaim policy,
status, claim, StorageClass, volume type (`local`, `shard_local`, `ceph`,
`nfs`, `hostpath` or `unknown`), location, age, whether the node of a local
volume still exists, whether its bound claim still exists, and whether a pod,
deployment, StatefulSet, DaemonSet, unfinished job or CronJob uses that claim:

```
devops-tool cluster get-pv
```

Either command writes an Excel workbook with a single sheet
(`StorageClasses` or `PersistentVolumes`) instead of the console table when
given a file path:

```
devops-tool cluster get-sc --file storageclasses.xlsx
devops-tool cluster get-pv -f volumes.xlsx
```

Use another kubeconfig:

```
devops-tool --kubeconfig /path/to/config cluster get-pv
```

Show the version:

```
devops-tool --version
```

## Using it as a library

```python
from devopstool.kubeclient import new_client
from devopstool.inventory import get_persistent_volume_info
from devopstool.cleanup import clean_storage_resources

client = new_client(None)
get_persistent_volume_info(client, "", None)
```

- `devopstool.kubeclient` holds `KubeClient`, a small JSON client for the API
  server, `load_kubeconfig` and `new_client`. Failed requests raise
  `KubeError`, and `NotFoundError` for a 404.
- `devopstool.inventory` builds the report rows (`storage_class_rows`,
  `persistent_volume_rows`) and prints or saves them
  (`get_storage_class_info`, `get_persistent_volume_info`).
- `devopstool.tables` holds `format_table`, which lines rows up in
  tab-padded columns, and `write_xlsx`, which writes rows to a one-sheet
  workbook.
- `devopstool.cleanup.clean_storage_resources(client, base_dir)` deletes
  StorageClasses that no PersistentVolume refers to, and PersistentVolumes
  that are `Available`, or `Released` with no claim, a missing claim or a
  claim whose UID no longer matches. Each resource is saved as YAML under
  `base_dir` (default `/data/storage-clean`) before it is deleted, and each
  step is appended to `clean.log` there.

## What it does not do

- The cleanup is not offered as a command, as it deletes cluster resources;
  it is only reachable through `clean_storage_resources` or `StorageCleaner`.
- It only reads credentials from a kubeconfig file: a bearer token, a token
  file, client certificates and a certificate authority. It does not use
  in-cluster service-account configuration or exec and auth-provider plugins.

## Tests

```
pip install .[test]
pytest
```