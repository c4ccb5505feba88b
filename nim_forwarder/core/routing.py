# nim_forwarder/core/routing.py
from typing import Any, List, Mapping

from .config import MODEL_MAPPING, DEFAULT_UPSTREAM_MODEL


class ModelRouter:
    """Resolves client-facing model ids to NVIDIA NIM model ids."""

    def __init__(self, mapping: Mapping[str, str] = MODEL_MAPPING, default_model: str = DEFAULT_UPSTREAM_MODEL):
        self._mapping = mapping
        self.default_model = default_model

    def resolve(self, client_model: Any) -> str:
        # Exact, case-sensitive match only; non-string ids (None, numbers, lists) get the default
        if not isinstance(client_model, str):
            return self.default_model
        return self._mapping.get(client_model, self.default_model)

    def model_ids(self) -> List[str]:
        return list(self._mapping.keys())
