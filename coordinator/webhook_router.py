from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import parse_qs, urlsplit


class Route(str, Enum):
    UNSUBSCRIBE = "unsubscribe"
    VERIFY = "verify"
    IGNORE = "ignore"


def route_event(event: Mapping[str, Any]) -> Tuple[Route, Dict[str, str]]:
    """
    Picks the flow for a provider event from the path of its clicked `url`.

    Returns the route and the url's query parameters (first value of each).
    """
    url = event.get("url")
    if not url or not isinstance(url, str):
        return Route.IGNORE, {}

    parts = urlsplit(url)
    query = {key: values[0] for key, values in parse_qs(parts.query).items() if values}
    path = parts.path or "/"

    if path == "/unsubscribe":
        return Route.UNSUBSCRIBE, query
    if path == "/" and "verify" in query:
        return Route.VERIFY, query
    return Route.IGNORE, query


def event_fields(event: Mapping[str, Any], query: Mapping[str, str]) -> Dict[str, Any]:
    """Event fields win over the url's query string."""
    fields: Dict[str, Any] = dict(query)
    fields.update({key: value for key, value in event.items() if value is not None})
    return fields


def first_event(events: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(events, list) and events and isinstance(events[0], Mapping):
        return events[0]
    return None
