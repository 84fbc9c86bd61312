"""Base class for mock collaborators used in testing."""
from typing import Any, Dict, List, Optional, Tuple


class BaseMockService:
    """Records calls and holds canned responses for fakes."""

    def __init__(self) -> None:
        self._calls: List[Tuple[str, Any]] = []
        self._responses: Dict[str, Any] = {}

    def record_call(self, method: str, *args, **kwargs) -> None:
        """Record a method call with its arguments."""
        self._calls.append((method, (args, kwargs)))

    def get_calls(self, method: Optional[str] = None) -> List[Tuple[str, Any]]:
        """Get recorded calls, optionally filtered by method name."""
        if method is None:
            return self._calls
        return [(m, args) for m, args in self._calls if m == method]

    def call_names(self) -> List[str]:
        return [m for m, _ in self._calls]

    def set_response(self, key: str, response: Any) -> None:
        self._responses[key] = response

    def get_response(self, key: str) -> Optional[Any]:
        return self._responses.get(key)

    def clear_calls(self) -> None:
        self._calls.clear()
