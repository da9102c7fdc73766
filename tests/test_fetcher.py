import pytest
import requests

from sitesleuth.errors import ConnectionRefused, HostNotFound, RemoteHttpError, Timeout
from sitesleuth.fetcher import HeaderMap, classify_failure, fetch_with_fallback
from sitesleuth.resolver import resolve

DNS_ERROR = requests.ConnectionError(
    "HTTPSConnectionPool(host='nowhere.invalid', port=443): Max retries exceeded "
    "(Caused by NameResolutionError: Failed to resolve 'nowhere.invalid' ([Errno -2] Name or service not known))"
)
REFUSED_ERROR = requests.ConnectionError(
    "HTTPConnectionPool(host='example.com', port=80): Max retries exceeded "
    "(Caused by NewConnectionError: Failed to establish a new connection: [Errno 111] Connection refused)"
)


def test_header_map_is_case_insensitive_and_multi_valued():
    headers = HeaderMap([("Set-Cookie", "a=1"), ("set-cookie", "b=2"), ("Server", "nginx")])
    assert headers["SERVER"] == "nginx"
    assert "server" in headers
    assert headers.get_all("Set-Cookie") == ["a=1", "b=2"]
    assert headers["set-cookie"] == "a=1, b=2"
    assert headers.get("x-missing") is None
    assert len(headers) == 2


def test_fetch_keeps_repeated_set_cookie_headers(client, adapter):
    adapter.add(
        "https://example.com/",
        body="<html></html>",
        headers=[("Set-Cookie", "sessionid=abc; Secure; HttpOnly"), ("Set-Cookie", "theme=dark")],
    )
    response = client.fetch("https://example.com")
    assert response.status_code == 200
    assert response.headers.get_all("set-cookie") == ["sessionid=abc; Secure; HttpOnly", "theme=dark"]
    assert response.headers["SET-COOKIE"] == "sessionid=abc; Secure; HttpOnly, theme=dark"


def test_header_map_from_response_without_raw_headers():
    resp = requests.Response()
    resp.headers["Server"] = "nginx"
    headers = HeaderMap.from_response(resp)
    assert headers.get_all("server") == ["nginx"]
    assert list(headers) == ["Server"]


def test_fetch_follows_redirects_unless_told_not_to(client, adapter):
    adapter.add("https://example.com/old", status=301, headers={"Location": "https://example.com/new"}, reason="Moved")
    adapter.add("https://example.com/new", body="new page")
    followed = client.fetch("https://example.com/old")
    assert followed.status_code == 200
    assert followed.text == "new page"
    assert followed.history == (301,)
    direct = client.fetch("https://example.com/old", allow_redirects=False)
    assert direct.status_code == 301


def test_fallback_switches_to_http(client, adapter):
    adapter.fail("https://example.com/", REFUSED_ERROR)
    adapter.add("http://example.com/", body="<title>plain</title>")
    response, target = fetch_with_fallback(resolve("example.com"), client)
    assert response.text == "<title>plain</title>"
    assert target.effective_url == "http://example.com"
    assert target.base_origin == "http://example.com"
    assert adapter.urls == ["https://example.com/", "http://example.com/"]


def test_fallback_switches_to_https(client, adapter):
    adapter.fail("http://example.com/", REFUSED_ERROR)
    adapter.add("https://example.com/", body="secure")
    _, target = fetch_with_fallback(resolve("http://example.com"), client)
    assert target.effective_url == "https://example.com"


def test_both_schemes_failing_surfaces_first_error(client, adapter):
    adapter.fail("https://nowhere.invalid/", DNS_ERROR)
    adapter.fail("http://nowhere.invalid/", REFUSED_ERROR)
    with pytest.raises(HostNotFound) as excinfo:
        fetch_with_fallback(resolve("nowhere.invalid"), client)
    assert str(excinfo.value) == "Website not found - please check the URL is correct"


def test_error_status_is_a_successful_fetch(client, adapter):
    adapter.add("https://example.com/", status=404, body="missing", reason="Not Found")
    response, target = fetch_with_fallback(resolve("example.com"), client)
    assert response.status_code == 404
    assert target.is_https
    assert adapter.urls == ["https://example.com/"]


@pytest.mark.parametrize(
    "exc, expected",
    [
        (requests.ConnectTimeout("timed out"), Timeout),
        (requests.ReadTimeout("read timed out"), Timeout),
        (DNS_ERROR, HostNotFound),
        (REFUSED_ERROR, ConnectionRefused),
        (requests.TooManyRedirects("Exceeded 5 redirects."), RemoteHttpError),
        (requests.ConnectionError("something odd"), RemoteHttpError),
    ],
)
def test_classify_failure(exc, expected):
    error = classify_failure(exc, "https://example.com")
    assert type(error) is expected
    assert error.url == "https://example.com"


def test_unclassified_failure_message():
    error = classify_failure(requests.ConnectionError("something odd"), "https://example.com")
    assert str(error) == "Scan failed: something odd"


def test_probe_never_raises(client, adapter):
    adapter.fail("https://example.com/.env", requests.ConnectionError("reset by peer"))
    result = client.probe("https://example.com/.env")
    assert not result.ok
    assert result.response is None
    assert "reset by peer" in result.error


def test_probe_many_keeps_request_order(client, adapter):
    adapter.add("https://example.com/a", body="a")
    adapter.add("https://example.com/c", status=302, headers={"Location": "/a"})
    urls = ["https://example.com/a", "https://example.com/b", "https://example.com/c"]
    results = client.probe_many(urls, allow_redirects=False)
    assert [r.url for r in results] == urls
    assert [r.status_code for r in results] == [200, 404, 302]
    assert results[0].succeeded() and not results[1].reachable() and results[2].reachable()
