from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any, Mapping

import pytest


@dataclass(frozen=True)
class ProviderCase:
    module_path: str
    expected_name: str
    source: str


CASES: tuple[ProviderCase, ...] = (
    ProviderCase(
        module_path="providers.sync._mod_GTASKS",
        expected_name="GTASKS",
        source="google-tasks",
    ),
)


@pytest.mark.parametrize("case", CASES)
def test_get_manifest_shape(case: ProviderCase):
    mod = importlib.import_module(case.module_path)
    manifest = mod.get_manifest()

    assert isinstance(manifest, Mapping)
    assert manifest.get("name") == case.expected_name
    assert manifest.get("source") == case.source
    assert isinstance(manifest.get("version"), str)
    assert manifest.get("type") == "sync"

    feats = manifest.get("features")
    assert isinstance(feats, Mapping)
    assert all(isinstance(v, bool) for v in feats.values())

    auth: Any = manifest.get("auth")
    assert isinstance(auth, Mapping)
    assert all(f["key"].startswith(f"{auth['config_key']}.") for f in auth["fields"])


@pytest.mark.parametrize("case", CASES)
def test_ops_satisfy_source_protocol(case: ProviderCase):
    mod = importlib.import_module(case.module_path)
    for name in ("name", "list_ids", "fetch_items", "update_completion", "delete_item", "find_item"):
        assert callable(getattr(mod.GTasksOps, name, None)), name
