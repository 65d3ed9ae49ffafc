import pytest

from ghostleak.engine.targets import origin_key, parse_target
from ghostleak.errors import ErrorCode, TargetError


def test_origin_key_format():
    assert origin_key("https", "example.com") == "https://example.com"


@pytest.mark.parametrize("url, expected", [
    ("https://example.com/", ("https", "example.com")),
    ("https://example.com:8443/a/b?q=1#frag", ("https", "example.com")),
    ("http://Example.COM/path", ("http", "example.com")),
    ("HTTP://example.com", ("http", "example.com")),
    ("http://user:pw@10.0.0.5:8080/", ("http", "10.0.0.5")),
])
def test_parse_target_drops_port_path_and_credentials(url, expected):
    assert parse_target(url) == expected


def test_ports_collapse_to_one_key():
    a = origin_key(*parse_target("http://shop.test:8080/cart"))
    b = origin_key(*parse_target("http://shop.test/"))
    assert a == b == "http://shop.test"


def test_schemes_do_not_collapse():
    assert origin_key(*parse_target("http://shop.test")) != origin_key(*parse_target("https://shop.test"))


@pytest.mark.parametrize("url", [
    "chrome://extensions",
    "about:blank",
    "file:///etc/passwd",
    "ftp://files.test/",
])
def test_unsupported_schemes_are_rejected(url):
    with pytest.raises(TargetError) as exc_info:
        parse_target(url)
    assert exc_info.value.code == ErrorCode.TARGET_UNSUPPORTED_SCHEME


@pytest.mark.parametrize("url", ["http://[::1", "https://", "not a url"])
def test_malformed_urls_are_rejected(url):
    with pytest.raises(TargetError):
        parse_target(url)


@pytest.mark.parametrize("url, expected", [
    ("http://[::1]:8080/x", ("http", "[::1]")),
    ("https://[2001:DB8::1]/", ("https", "[2001:db8::1]")),
])
def test_ipv6_literals_keep_brackets(url, expected):
    assert parse_target(url) == expected
    assert origin_key(*parse_target(url)) == f"{expected[0]}://{expected[1]}"


def test_origin_key_brackets_bare_ipv6():
    assert origin_key("http", "::1") == "http://[::1]"


def test_unicode_hostnames_are_idna_encoded():
    assert parse_target("http://bücher.de/katalog") == ("http", "xn--bcher-kva.de")
    assert origin_key(*parse_target("http://BÜCHER.de")) == "http://xn--bcher-kva.de"


def test_invalid_unicode_hostname_is_rejected():
    with pytest.raises(TargetError) as exc_info:
        parse_target("http://a..bücher.de/")
    assert exc_info.value.code == ErrorCode.TARGET_INVALID
