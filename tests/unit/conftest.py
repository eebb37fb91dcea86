import importlib
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import pytest

from mangrovemapper.config import ConfigLoader, PipelineConfig

EE_MODULES = (
    "mangrovemapper.earthengine.session",
    "mangrovemapper.earthengine.geometry",
    "mangrovemapper.preprocessing.landsat",
    "mangrovemapper.analysis.ccdc",
    "mangrovemapper.analysis.anomaly",
    "mangrovemapper.analysis.composites",
    "mangrovemapper.export.manager",
    "mangrovemapper.cli.main",
)

EE_ENV_VARS = ("EE_PROJECT", "EE_SERVICE_ACCOUNT", "EE_PRIVATE_KEY_FILE", "GOOGLE_CLOUD_PROJECT")


class FakeEEException(Exception):
    pass


class FakeExpr:
    """A node of the lazy graph; every method call returns a new recorded node."""

    def __init__(self, recorder: "Recorder", op: str, args=(), kwargs=None, source: Optional["FakeExpr"] = None):
        self._recorder = recorder
        self.op = op
        self.args = tuple(args)
        self.kwargs = dict(kwargs or {})
        self.source = source

    def __getattr__(self, attr: str):
        if attr.startswith("_"):
            raise AttributeError(attr)

        def method(*args, **kwargs):
            return self._recorder.record(attr, args, kwargs, source=self)

        return method

    def getInfo(self) -> Any:
        return self._recorder.info.get(self.op)

    def lineage(self) -> List[str]:
        chain = []
        node: Optional[FakeExpr] = self
        while node is not None:
            chain.append(node.op)
            node = node.source
        return list(reversed(chain))

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"FakeExpr({'.'.join(self.lineage())})"


class FakeTask(FakeExpr):
    def __init__(self, *args, task_id: str, **kwargs):
        super().__init__(*args, **kwargs)
        self.id = task_id
        self.started = False

    def start(self) -> None:
        self.started = True


class Recorder:
    def __init__(self) -> None:
        self.calls: List[FakeExpr] = []
        self.tasks: List[FakeTask] = []
        self.info: Dict[str, Any] = {}
        self.fail_on: Set[str] = set()

    def record(self, op: str, args, kwargs, source: Optional[FakeExpr] = None) -> FakeExpr:
        if op in self.fail_on:
            raise FakeEEException(f"{op} rejected")
        if op.startswith("batch.Export."):
            expr: FakeExpr = FakeTask(self, op, args, kwargs, source, task_id=f"TASK{len(self.tasks) + 1}")
            self.tasks.append(expr)  # type: ignore[arg-type]
        else:
            expr = FakeExpr(self, op, args, kwargs, source)
        self.calls.append(expr)
        return expr

    def named(self, op: str) -> List[FakeExpr]:
        return [call for call in self.calls if call.op == op]


class FakeConstructor:
    def __init__(self, recorder: Recorder, path: str) -> None:
        self._recorder = recorder
        self._path = path

    def __call__(self, *args, **kwargs) -> FakeExpr:
        return self._recorder.record(self._path, args, kwargs)

    def __getattr__(self, attr: str) -> "FakeConstructor":
        if attr.startswith("_"):
            raise AttributeError(attr)
        return FakeConstructor(self._recorder, f"{self._path}.{attr}")


class FakeEarthEngine:
    """Stand-in for the ``ee`` module reference held by package modules."""

    EEException = FakeEEException

    def __init__(self) -> None:
        self.recorder = Recorder()

    def __getattr__(self, attr: str) -> FakeConstructor:
        if attr.startswith("_"):
            raise AttributeError(attr)
        return FakeConstructor(self.recorder, attr)


@pytest.fixture()
def fake_ee(monkeypatch: pytest.MonkeyPatch) -> FakeEarthEngine:
    fake = FakeEarthEngine()
    for module_name in EE_MODULES:
        monkeypatch.setattr(importlib.import_module(module_name), "ee", fake)
    for name in EE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return fake


@pytest.fixture()
def pipeline_config(tmp_path: Path) -> PipelineConfig:
    return ConfigLoader(base_dir=tmp_path).build(
        {
            "output_dir": str(tmp_path / "output"),
            "earthengine": {"project": "test-project"},
            "region": {"bbox": [-67.3, 17.9, -65.2, 18.5]},
            "assets": {
                "all_mangrove": "projects/test/assets/AllMangrove",
                "landcover_before": "projects/test/assets/Landcover_2015",
                "landcover_after": "projects/test/assets/Landcover_2023",
            },
            "export": {"asset_root": "projects/test/assets"},
        }
    )
