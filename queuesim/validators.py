class InvalidParameter(ValueError):
    """Raised for configuration that must be rejected before any sampling."""


def require_positive(name: str, value: float) -> None:
    if value is None or value <= 0:
        raise InvalidParameter(f"{name} must be > 0")

def require_non_negative(name: str, value: float) -> None:
    if value is None or value < 0:
        raise InvalidParameter(f"{name} must be >= 0")

def require_int_at_least(name: str, value: int, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise InvalidParameter(f"{name} must be an integer >= {minimum}")

def require_ordered(low_name: str, low: float, high_name: str, high: float, strict: bool = True) -> None:
    if low is None or high is None:
        raise InvalidParameter(f"{low_name} and {high_name} are required")
    if strict and low >= high:
        raise InvalidParameter(f"{low_name} must be < {high_name}")
    if not strict and low > high:
        raise InvalidParameter(f"{low_name} must be <= {high_name}")

def require_param(params: dict, key: str, family: str) -> float:
    if key not in params or params[key] is None:
        raise InvalidParameter(f"{family} requires param '{key}'")
    try:
        return float(params[key])
    except (TypeError, ValueError):
        raise InvalidParameter(f"{family} param '{key}' must be numeric") from None
