"""Shared types and lightweight data containers.

We avoid heavy frameworks here. The goal is:
- keep the provider contract portable across harnesses
- keep typing clear but not over-abstract

Provider configs stay plain dicts (they usually come straight from YAML);
only the values that cross the harness boundary get a dataclass.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

ProviderConfig = Dict[str, Any]
EnvOverrides = Dict[str, str]
FunctionToolCallback = Callable[[str], str]

@dataclass(frozen=True)
class ModelCost:
    # USD per token
    input: float
    output: float

@dataclass(frozen=True)
class ModelCatalogEntry:
    id: str
    cost: Optional[ModelCost] = None

@dataclass
class CallApiContext:
    vars: Dict[str, Any] = field(default_factory=dict)

@dataclass
class CallApiOptions:
    include_log_probs: bool = False

@dataclass
class TokenUsage:
    total: Optional[int] = None
    prompt: Optional[int] = None
    completion: Optional[int] = None
    cached: Optional[int] = None

    def to_dict(self) -> Dict[str, int]:
        return {k: v for k, v in vars(self).items() if v is not None}

@dataclass
class ProviderResponse:
    output: Any = None
    error: Optional[str] = None
    token_usage: Optional[TokenUsage] = None
    cached: bool = False
    log_probs: Optional[List[float]] = None
    cost: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}

        out: Dict[str, Any] = {"output": self.output, "cached": self.cached}
        if self.token_usage is not None:
            out["tokenUsage"] = self.token_usage.to_dict()
        if self.log_probs is not None:
            out["logProbs"] = self.log_probs
        if self.cost is not None:
            out["cost"] = self.cost
        return out

@dataclass
class FetchResult:
    data: Any
    cached: bool = False
