"""Provider interface used by the evaluation harness."""
from __future__ import annotations

from typing import Optional

from ..types import CallApiContext, CallApiOptions, ProviderResponse

class ApiProvider:
    def id(self) -> str:
        raise NotImplementedError

    def call_api(
        self,
        prompt: str,
        context: Optional[CallApiContext] = None,
        options: Optional[CallApiOptions] = None,
    ) -> ProviderResponse:
        raise NotImplementedError
