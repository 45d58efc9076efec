"""Model store — load, validate and hold classifier parameters.

Parameters come from an exported JSON document::

    {
      "type": "linear_svm",
      "version": "1.0",
      "feature_order": ["mean_hr", ...],
      "scaler_mean": [...], "scaler_scale": [...],
      "classes": ["Amused", "Calm", "Stressed"],
      "weights": [[...], [...], [...]],
      "bias": [...],
      "model_hash": "...", "export_time_utc": "...", ...
    }

Validation is fail-fast: any dimensional inconsistency raises
:class:`ModelLoadError` and nothing is truncated or padded.
"""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, Union

import structlog
from pydantic import ValidationError

from affect_score.errors import ModelLoadError
from affect_score.features import FEATURE_DIM, FEATURE_ORDER
from affect_score.models import ModelParameters

logger = structlog.get_logger(__name__)

DEFAULT_MODEL_RESOURCE = "default_model.json"

ModelSource = Union[str, Path, bytes, Mapping[str, Any], ModelParameters]


def _read_source(source: ModelSource) -> Mapping[str, Any] | ModelParameters:
    """Turn any supported source into a mapping (or pass parameters through)."""
    if isinstance(source, ModelParameters):
        return source
    if isinstance(source, Mapping):
        return source

    if isinstance(source, bytes):
        try:
            text = source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ModelLoadError(f"Model document is not UTF-8: {exc}") from exc
    elif isinstance(source, str) and source.lstrip().startswith("{"):
        text = source
    else:
        path = Path(source)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ModelLoadError(f"Cannot read model file {path}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise ModelLoadError(f"Model file {path} is not UTF-8: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ModelLoadError(f"Model document is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ModelLoadError("Model document must be a JSON object.")
    return data


def _describe(source: ModelSource) -> str:
    if isinstance(source, Path):
        return str(source)
    if isinstance(source, str) and not source.lstrip().startswith("{"):
        return source
    return "<inline>"


def validate_parameters(params: ModelParameters) -> ModelParameters:
    """Check the parameters against the feature extractor's layout."""
    if params.n_features != FEATURE_DIM:
        raise ModelLoadError(
            f"Model expects {params.n_features} features, extractor produces {FEATURE_DIM}."
        )
    if params.feature_order and tuple(params.feature_order) != FEATURE_ORDER:
        # Names are advisory; dimension is the contract.
        logger.warning(
            "model_store.feature_order_differs",
            model_order=list(params.feature_order),
            extractor_order=list(FEATURE_ORDER),
        )
    return params


def load_model(source: ModelSource) -> ModelParameters:
    """Parse and validate model parameters from *source*.

    Parameters
    ----------
    source
        A file path, a JSON string or bytes, a mapping, or an existing
        :class:`ModelParameters` instance.

    Raises
    ------
    ModelLoadError
        If the document is unreadable, malformed, or dimensionally
        inconsistent.
    """
    raw = _read_source(source)
    if isinstance(raw, ModelParameters):
        return validate_parameters(raw)
    try:
        params = ModelParameters.model_validate(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'model'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ModelLoadError(f"Invalid model parameters: {problems}") from exc
    return validate_parameters(params)


class ModelStore:
    """Owns the classifier parameters for the lifetime of the process.

    Usage::

        store = ModelStore()
        params = store.load("models/svm_linear_v1.json")
        ...
        store.parameters  # same immutable object
    """

    def __init__(self) -> None:
        self._params: ModelParameters | None = None
        self._source: str = ""

    def load(self, source: ModelSource) -> ModelParameters:
        """Load and validate parameters, replacing any previously held ones."""
        params = load_model(source)
        self._params = params
        self._source = _describe(source)
        logger.info(
            "model_store.loaded",
            source=self._source,
            classes=list(params.classes),
            n_features=params.n_features,
            version=params.version,
            model_hash=params.model_hash,
        )
        return params

    def load_default(self) -> ModelParameters:
        """Load the model bundled with the package."""
        text = (
            resources.files("affect_score")
            .joinpath("data")
            .joinpath(DEFAULT_MODEL_RESOURCE)
            .read_text(encoding="utf-8")
        )
        params = self.load(text)
        self._source = f"bundled:{DEFAULT_MODEL_RESOURCE}"
        return params

    @classmethod
    def default(cls) -> ModelStore:
        store = cls()
        store.load_default()
        return store

    @property
    def loaded(self) -> bool:
        return self._params is not None

    @property
    def parameters(self) -> ModelParameters:
        if self._params is None:
            raise ModelLoadError("No model loaded.")
        return self._params

    @property
    def source(self) -> str:
        return self._source
