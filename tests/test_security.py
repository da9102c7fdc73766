from dataclasses import replace
from urllib.parse import parse_qs, urlsplit

import pytest

from sitesleuth.checks import CHECK_REGISTRY
from sitesleuth.checks.security import SQL_PAYLOAD, XSS_PAYLOAD


def _run(context):
    return CHECK_REGISTRY.run("security", context)


def _named(checks, name):
    matches = [check for check in checks if check.name == name]
    assert len(matches) == 1, f"expected exactly one {name!r} check"
    return matches[0]


def _names(checks):
    return [check.name for check in checks]


def test_missing_csp_alone_fails_critical_headers(make_context, secure_headers):
    del secure_headers["Content-Security-Policy"]
    checks = _run(make_context(headers=secure_headers))
    critical = _named(checks, "Security Config - Critical Headers")
    assert critical.status == "fail"
    assert critical.description == "Missing critical security headers: Content-Security-Policy"
    assert _named(checks, "Security Config - Additional Headers").status == "pass"
    assert _named(checks, "Data Integrity - Content Security Policy").status == "fail"


def test_all_headers_present(make_context, secure_headers):
    checks = _run(make_context(headers=secure_headers))
    assert _named(checks, "Security Config - Critical Headers").status == "pass"
    assert _named(checks, "Cryptographic - HSTS").status == "pass"
    assert _named(checks, "Injection - XSS Protection").status == "pass"
    assert _named(checks, "Security Config - CSP Effectiveness").status == "pass"


@pytest.mark.parametrize(
    "open_paths, status",
    [
        ([], "pass"),
        (["/admin", "/wp-admin"], "warning"),
        (["/admin", "/wp-admin", "/phpmyadmin"], "fail"),
    ],
)
def test_admin_path_thresholds(make_context, adapter, open_paths, status):
    for path in open_paths:
        adapter.add(f"https://example.com{path}", body="<h1>Admin</h1>")
    check = _named(_run(make_context()), "Access Control - Admin Paths")
    assert check.status == status
    if open_paths:
        assert check.description.startswith(f"{len(open_paths)} admin paths accessible: ")


def test_admin_redirect_is_not_counted(make_context, adapter):
    adapter.add("https://example.com/admin", status=302, headers={"Location": "/login"})
    adapter.add("https://example.com/login", body="login page")
    check = _named(_run(make_context()), "Access Control - Admin Paths")
    assert check.status == "pass"


def test_sensitive_file_exposure(make_context, adapter):
    adapter.add("https://example.com/.env", body="SECRET_KEY=hunter2")
    adapter.add("https://example.com/.htaccess", body="   ")
    check = _named(_run(make_context()), "Access Control - Sensitive Files")
    assert check.status == "fail"
    assert check.description == "1 sensitive files exposed: /.env"


def test_directory_listing_and_mixed_content(make_context):
    html = '<title>Index of /files</title><img src="http://cdn.example.com/a.png">'
    checks = _run(make_context(html))
    assert _named(checks, "Access Control - Directory Listing").status == "fail"
    mixed = _named(checks, "Cryptographic - Mixed Content")
    assert mixed.status == "fail"
    assert mixed.description == "Site contains mixed content: 1 HTTP resources on HTTPS page"


def test_plain_http_site(make_context):
    checks = _run(make_context(url="http://example.com"))
    assert _named(checks, "Cryptographic - HTTPS Usage").status == "fail"
    assert "Cryptographic - Mixed Content" not in _names(checks)


def test_sql_error_disclosure_in_page(make_context):
    checks = _run(make_context("<p>Warning: mysql_fetch_array() expects parameter 1</p>"))
    assert _named(checks, "Injection - SQL Error Disclosure").status == "fail"


def test_unrelated_words_are_not_sql_errors(make_context):
    html = "<p>We love SQL.</p>" + ("<p>filler</p>" * 20) + "\n<p>No error here.</p>"
    checks = _run(make_context(html))
    assert _named(checks, "Injection - SQL Error Disclosure").status == "pass"


def test_csrf_only_reported_when_forms_exist(make_context):
    assert "Injection - CSRF Protection" not in _names(_run(make_context("<p>no forms</p>")))

    unprotected = _run(make_context('<form method="post"><input name="q"></form>'))
    assert _named(unprotected, "Injection - CSRF Protection").status == "fail"

    protected = _run(
        make_context('<form method="post"><input type="hidden" name="csrf_token" value="x"><input name="q"></form>')
    )
    assert _named(protected, "Injection - CSRF Protection").status == "pass"


def test_command_injection_markers(make_context):
    checks = _run(make_context("<pre>echo shell_exec($_GET['cmd']);</pre>"))
    check = _named(checks, "Injection - Command Injection Risk")
    assert check.status == "fail"
    assert "shell_exec(" in check.description
    assert "$_GET[" in check.description
    assert "Injection - Command Injection Risk" not in _names(_run(make_context("<p>clean</p>")))


def test_active_form_sql_injection(make_context, adapter):
    html = '<form method="post" action="/login"><input name="user"><input type="password" name="pw"></form>'
    adapter.add(
        "https://example.com/login",
        method="POST",
        body="You have an error in your SQL syntax; check the manual",
    )
    checks = _run(make_context(html))
    sql = _named(checks, "Injection - Active SQL Injection Test")
    assert sql.status == "fail"
    assert sql.description == "SQL injection vulnerability detected in forms: /login"
    assert _named(checks, "Injection - Active XSS Test").status == "pass"
    posted = [req for req in adapter.requests if req.method == "POST"]
    assert len(posted) == 2
    assert "user=%27+OR+%271%27%3D%271" in posted[0].body


def test_sql_signature_already_on_page_is_not_new(make_context, adapter):
    html = (
        "<p>You have an error in your SQL syntax</p>"
        '<form method="post" action="/login"><input name="user"></form>'
    )
    adapter.add("https://example.com/login", method="POST", body="You have an error in your SQL syntax")
    checks = _run(make_context(html))
    assert _named(checks, "Injection - Active SQL Injection Test").status == "pass"


def _reflect_query(request):
    params = parse_qs(urlsplit(request.url).query)
    return "<p>Results for " + " ".join(value for values in params.values() for value in values) + "</p>"


def test_url_parameter_xss_reflection(make_context, adapter):
    adapter.add("https://example.com/", body=_reflect_query)
    checks = _run(make_context())
    xss = _named(checks, "Injection - URL Parameter XSS")
    assert xss.status == "fail"
    assert xss.description == "XSS vulnerability found in URL parameters: search, q, name, comment, message, title"
    assert _named(checks, "Injection - URL Parameter SQL Injection").status == "pass"
    assert "Injection - Active XSS Test" not in _names(checks)


def test_url_parameter_sql_injection(make_context, adapter):
    def respond(request):
        query = parse_qs(urlsplit(request.url).query)
        if query.get("id") == [SQL_PAYLOAD]:
            return "Warning: mysql_num_rows() expects parameter 1 to be resource"
        return "<p>ok</p>"

    adapter.add("https://example.com/", body=respond)
    check = _named(_run(make_context()), "Injection - URL Parameter SQL Injection")
    assert check.status == "fail"
    assert check.description == (
        f"SQL injection vulnerability found in URL parameters: id with payload: {SQL_PAYLOAD}"
    )


def test_disabled_active_probing_skips_payloads(make_context, adapter, settings):
    adapter.add("https://example.com/", body=_reflect_query)
    passive = replace(settings, allow_active_probing=False)
    html = '<form method="get"><input name="q"></form>'
    checks = _run(make_context(html, scan_settings=passive))
    names = _names(checks)
    assert "Injection - CSRF Protection" in names
    for skipped in (
        "Injection - Active SQL Injection Test",
        "Injection - Active XSS Test",
        "Injection - URL Parameter SQL Injection",
        "Injection - URL Parameter XSS",
    ):
        assert skipped not in names
    assert not any(XSS_PAYLOAD in url or "OR" in url for url in adapter.urls)
    assert all("?" not in url for url in adapter.urls)


def test_vulnerable_endpoints_with_forms(make_context, adapter):
    adapter.add("https://example.com/search.php", body="<form><input name='q'></form>")
    adapter.add("https://example.com/contact.php", body="<p>Call us</p>")
    check = _named(_run(make_context()), "Injection - Vulnerable Endpoints")
    assert check.status == "warning"
    assert check.description == "Found 2 potentially vulnerable endpoints: Search Function, Contact Form"


def test_vulnerable_endpoints_absent_when_nothing_found(make_context):
    assert "Injection - Vulnerable Endpoints" not in _names(_run(make_context()))


def test_disclosure_headers_and_error_pages(make_context):
    checks = _run(make_context(headers={"Server": "nginx/1.18.0", "X-Powered-By": "PHP/7.4"}, status=404))
    assert _named(checks, "Security Config - Server Disclosure").description == (
        "Server information disclosed: nginx/1.18.0"
    )
    assert _named(checks, "Security Config - Technology Disclosure").status == "warning"
    assert _named(checks, "Security Config - Error Pages").status == "warning"
    assert "Security Config - Error Pages" not in _names(_run(make_context()))


def test_weak_csp_directives(make_context):
    headers = {"Content-Security-Policy": "default-src * 'unsafe-inline'; img-src data:"}
    check = _named(_run(make_context(headers=headers)), "Security Config - CSP Effectiveness")
    assert check.status == "warning"
    assert check.description.endswith("'unsafe-inline', wildcard sources, data: scheme")


def test_session_cookie_flags(make_context):
    headers = [
        ("Set-Cookie", "sessionid=abc123; Path=/"),
        ("Set-Cookie", "PHPSESSID=xyz; Secure; HttpOnly"),
        ("Set-Cookie", "theme=dark"),
    ]
    check = _named(_run(make_context(headers=headers)), "Authentication - Session Cookie Security")
    assert check.status == "fail"
    assert check.description == "Session cookies lack proper security flags: sessionid (missing Secure, HttpOnly)"


def test_secure_session_cookie_passes(make_context):
    headers = [("Set-Cookie", "sessionid=abc123; Secure; HttpOnly; Path=/")]
    check = _named(_run(make_context(headers=headers)), "Authentication - Session Cookie Security")
    assert check.status == "pass"


def test_login_form_over_http(make_context):
    html = '<form action="/login"><input name="username"><input type="password" name="password"></form>'
    checks = _run(make_context(html, url="http://example.com"))
    assert _named(checks, "Authentication - Secure Login").status == "fail"
    assert _named(checks, "Authentication - Password Autocomplete").status == "warning"


def test_outdated_components_and_integrity(make_context):
    html = (
        '<script src="https://code.jquery.com/jquery-3.5.1.min.js"></script>'
        '<script src="https://cdn.example.net/app.js" integrity="sha384-abc"></script>'
        '<script src="/local.js"></script>'
    )
    checks = _run(make_context(html))
    libraries = _named(checks, "Outdated Components - JavaScript Libraries")
    assert libraries.description == "Detected libraries: jquery v3.5.1"
    sri = _named(checks, "Data Integrity - Subresource Integrity")
    assert sri.status == "fail"
    assert sri.description == "1 of 2 external scripts use SRI"


def test_ssrf_indicators(make_context):
    html = '<form><input type="url" name="website"></form><p>Configure your webhook</p>'
    checks = _run(make_context(html, url="https://example.com/fetch?redirect_to=x"))
    assert _named(checks, "SSRF - Suspicious URL Parameters").description == (
        "Found potentially vulnerable URL parameters: redirect_to"
    )
    assert _named(checks, "SSRF - URL Input Fields").status == "warning"
    assert _named(checks, "SSRF - Webhook/Callback Functionality").status == "warning"


def test_group_order_is_stable(make_context):
    checks = _run(make_context())
    prefixes = []
    for name in _names(checks):
        prefix = name.split(" - ")[0]
        if not prefixes or prefixes[-1] != prefix:
            prefixes.append(prefix)
    assert prefixes == [
        "Access Control",
        "Cryptographic",
        "Injection",
        "Insecure Design",
        "Security Config",
        "Outdated Components",
        "Data Integrity",
        "Logging",
    ]


def test_unparseable_script_source_counts_as_missing_sri(make_context):
    html = '<script src="http://[oops/x.js"></script><script src="https://cdn.example.net/a.js" integrity="sha384-x"></script>'
    sri = _named(_run(make_context(html)), "Data Integrity - Subresource Integrity")
    assert sri.status == "fail"
    assert sri.description == "1 of 2 external scripts use SRI"


def test_form_with_unparseable_action_is_skipped(make_context, adapter):
    checks = _run(make_context('<form action="http://[bad/"><input name="q"></form>'))
    assert _named(checks, "Injection - Active SQL Injection Test").status == "pass"
    assert _named(checks, "Injection - Active XSS Test").status == "pass"
    assert not any("[bad" in url for url in adapter.urls)


def test_unknown_cookie_attribute_does_not_hide_session_cookie(make_context):
    headers = [("Set-Cookie", "sessionid=abc; Path=/; Partitioned")]
    check = _named(_run(make_context(headers=headers, url="http://example.com")), "Authentication - Session Cookie Security")
    assert check.status == "fail"
    assert check.description == "Session cookies lack proper security flags: sessionid (missing Secure, HttpOnly)"

    secured = [("Set-Cookie", "sessionid=abc; secure; HTTPONLY; Partitioned")]
    assert _named(_run(make_context(headers=secured)), "Authentication - Session Cookie Security").status == "pass"


def test_blank_security_headers_count_as_missing(make_context, secure_headers):
    secure_headers["Content-Security-Policy"] = ""
    secure_headers["Referrer-Policy"] = "  "
    checks = _run(make_context(headers=secure_headers))
    critical = _named(checks, "Security Config - Critical Headers")
    assert critical.status == "fail"
    assert critical.description == "Missing critical security headers: Content-Security-Policy"
    additional = _named(checks, "Security Config - Additional Headers")
    assert additional.status == "warning"
    assert "Referrer-Policy" in additional.description
