from coordinator.webhook_router import Route, event_fields, first_event, route_event

def test_route_unsubscribe():
    route, query = route_event({"url": "https://x.io/unsubscribe?frequency=weekly"})
    assert route == Route.UNSUBSCRIBE
    assert query == {"frequency": "weekly"}

def test_route_verify_requires_flag():
    assert route_event({"url": "https://x.io/?verify=true&frequency=weekly"})[0] == Route.VERIFY
    assert route_event({"url": "https://x.io?verify=true"})[0] == Route.VERIFY
    assert route_event({"url": "https://x.io/?frequency=weekly"})[0] == Route.IGNORE
    assert route_event({"url": "https://x.io/?verify="})[0] == Route.IGNORE

def test_route_other_paths_ignored():
    assert route_event({"url": "https://x.io/about?verify=true"})[0] == Route.IGNORE
    assert route_event({"url": "https://x.io/unsubscribe/now"})[0] == Route.IGNORE
    assert route_event({})[0] == Route.IGNORE
    assert route_event({"url": 42})[0] == Route.IGNORE

def test_event_fields_prefer_event_values():
    fields = event_fields({"email": "a@b.com", "frequency": "monthly", "sg_event_id": None},
                          {"frequency": "weekly", "delegatorAddress": "0xabc"})
    assert fields == {"email": "a@b.com", "frequency": "monthly", "delegatorAddress": "0xabc"}

def test_first_event():
    assert first_event([{"a": 1}, {"b": 2}]) == {"a": 1}
    assert first_event([]) is None
    assert first_event({"a": 1}) is None
    assert first_event(None) is None
    assert first_event(["x"]) is None
