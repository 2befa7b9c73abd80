from litestar.testing import RequestFactory

from litestar_monolikit import MonolikitHeaders, MonolikitRequest


def _request(headers: "dict[str, str]") -> "MonolikitRequest[object, object, object]":
    return MonolikitRequest(RequestFactory().get("/", headers=headers).scope)


def test_marker_header_enables_protocol() -> None:
    assert _request({MonolikitHeaders.ENABLED.value: "true"}).is_monolikit
    assert _request({MonolikitHeaders.ENABLED.value: "1"}).is_monolikit
    assert not _request({}).is_monolikit


def test_protocol_headers() -> None:
    request = _request(
        {
            MonolikitHeaders.ENABLED.value: "true",
            MonolikitHeaders.VERSION.value: "abc123",
            MonolikitHeaders.ERROR_BAG.value: "login",
            MonolikitHeaders.PARTIAL_COMPONENT.value: "Dashboard",
            MonolikitHeaders.ONLY_DATA.value: "users,stats",
            MonolikitHeaders.EXCEPT_DATA.value: "audit",
        }
    )

    assert request.monolikit_version == "abc123"
    assert request.error_bag == "login"
    assert request.monolikit.partial_component == "Dashboard"
    assert request.monolikit.only_data == ["users", "stats"]
    assert request.monolikit.except_data == ["audit"]


def test_missing_headers() -> None:
    request = _request({})

    assert request.monolikit_version is None
    assert request.error_bag is None
    assert request.monolikit.only_data == []
    assert not request.monolikit_enabled


def test_uri_autoencoded_header() -> None:
    request = _request(
        {
            MonolikitHeaders.ERROR_BAG.value: "sign%20up",
            f"{MonolikitHeaders.ERROR_BAG.value}-Uri-AutoEncoded": "true",
        }
    )

    assert request.error_bag == "sign up"
