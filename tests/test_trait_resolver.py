import asyncio
import httpx
import pytest
from exceptions import ExternalLookupError
from trait_resolver import Gw2TraitResolver, group_by_tier

SPECIALIZATION = {"id": 42, "name": "Zeal", "major_traits": [653, 1556, 563, 634, 2179, 1538, 468, 1686, 2049]}
TRAITS = [
    {"id": 653, "tier": 1, "order": 2},
    {"id": 1556, "tier": 1, "order": 0},
    {"id": 563, "tier": 1, "order": 1},
    {"id": 634, "tier": 2, "order": 0},
    {"id": 2179, "tier": 2, "order": 1},
    {"id": 1538, "tier": 2, "order": 2},
    {"id": 468, "tier": 3, "order": 1},
    {"id": 1686, "tier": 3, "order": 2},
    {"id": 2049, "tier": 3, "order": 0},
]


def run(coro):
    return asyncio.run(coro)


def make_resolver(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Gw2TraitResolver(client=client, api_base="https://api.test/v2", **kwargs)


def gw2_handler(requests):
    def handler(request: httpx.Request):
        requests.append(request.url.path)
        if request.url.path == "/v2/specializations/42":
            return httpx.Response(200, json=SPECIALIZATION)
        if request.url.path == "/v2/traits":
            return httpx.Response(200, json=TRAITS)
        return httpx.Response(404, json={"text": "no such id"})
    return handler


def test_group_by_tier():
    assert group_by_tier(TRAITS) == ((1556, 563, 653), (634, 2179, 1538), (2049, 468, 1686))


def test_resolves_and_caches():
    requests = []
    resolver = make_resolver(gw2_handler(requests))
    first = run(resolver.resolve_tier_order(42))
    second = run(resolver.resolve_tier_order(42))
    assert first == second == ((1556, 563, 653), (634, 2179, 1538), (2049, 468, 1686))
    assert requests == ["/v2/specializations/42", "/v2/traits"]


def test_unknown_specialization():
    resolver = make_resolver(gw2_handler([]))
    with pytest.raises(ExternalLookupError):
        run(resolver.resolve_tier_order(7))


def test_stale_cache_is_served_on_error():
    healthy = {"up": True}

    def handler(request):
        if not healthy["up"]:
            raise httpx.ConnectError("offline", request=request)
        return gw2_handler([])(request)

    resolver = make_resolver(handler, cache_seconds=0)
    expected = run(resolver.resolve_tier_order(42))
    healthy["up"] = False
    assert run(resolver.resolve_tier_order(42)) == expected


def test_clear_cache_then_offline():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    resolver = make_resolver(handler)
    resolver.clear_cache()
    with pytest.raises(ExternalLookupError):
        run(resolver.resolve_tier_order(42))
