"""Security checks, one group per Top-10 vulnerability class.

Each group is a plain function ``(ScanContext) -> List[CheckResult]``. Groups
never look at each other's findings; the registry concatenates their output in
registration order. Probes that fail are skipped and count as "nothing found".
"""

from __future__ import annotations

import logging
import re
from http.cookies import CookieError, SimpleCookie
from typing import Dict, List, Optional, Sequence, Set, Tuple
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from ..context import ScanContext
from ..document import Document, Element
from ..fetcher import ProbeResult
from ..models import STATUS_FAIL, STATUS_PASS, STATUS_WARNING, CheckResult

logger = logging.getLogger("sitesleuth.checks.security")

ADMIN_PATHS = (
    "/admin",
    "/administrator",
    "/wp-admin",
    "/cpanel",
    "/control-panel",
    "/admin.php",
    "/login.php",
    "/admin.asp",
    "/admin.aspx",
    "/admin.html",
    "/manager",
    "/management",
    "/console",
    "/backend",
    "/cms",
    "/phpmyadmin",
    "/phpMyAdmin",
    "/wp-login.php",
)
SENSITIVE_FILES = (
    "/.env",
    "/.git/config",
    "/web.config",
    "/.htaccess",
    "/config.php",
    "/database.yml",
    "/secrets.txt",
    "/.aws/credentials",
)
VULNERABLE_ENDPOINTS = (
    ("/admin.php", "Admin Panel"),
    ("/login.php", "Login Page"),
    ("/search.php", "Search Function"),
    ("/comment.php", "Comment System"),
    ("/contact.php", "Contact Form"),
    ("/register.php", "Registration"),
)

DIRECTORY_LISTING_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"Index of /",
        r"Directory Listing",
        r"Parent Directory",
        r"<title>Index of",
        r"\[To Parent Directory\]",
        r"<h1>Index of",
    )
)

# Bounded gaps keep a stray "sql" and "error" far apart on one page from matching.
SQL_ERROR_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"you have an error in your sql syntax",
        r"sql syntax[^\n]{0,60}error",
        r"warning:[^\n]{0,60}mysql",
        r"mysql_fetch",
        r"mysql[^\n]{0,60}error",
        r"postgresql[^\n]{0,60}error",
        r"pg::[a-z]*error",
        r"ora-\d{5}",
        r"microsoft[^\n]{0,60}odbc",
        r"sqlite[^\n]{0,60}error",
        r"sqlstate\[",
        r"syntax error[^\n]{0,60}near",
        r"unclosed quotation mark",
        r"incorrect syntax near",
        r"microsoft jet database",
        r"access database engine",
    )
)
COMMAND_INJECTION_PATTERNS = (
    ("shell_exec(", re.compile(r"shell_exec\s*\(", re.IGNORECASE)),
    ("passthru(", re.compile(r"passthru\s*\(", re.IGNORECASE)),
    ("popen(", re.compile(r"\bpopen\s*\(", re.IGNORECASE)),
    ("$_GET[", re.compile(r"\$_GET\s*\[")),
    ("$_POST[", re.compile(r"\$_POST\s*\[")),
)
STACK_TRACE_MARKERS = (
    "traceback (most recent call last)",
    "stack trace",
    "exception in thread",
    "fatal error",
    "undefined index",
    "unhandled exception",
)
CSRF_FIELD_HINTS = ("csrf", "xsrf", "token", "authenticity")

SQL_PAYLOAD = "' OR '1'='1"
XSS_PAYLOAD = "<script>alert('XSS')</script>"
SQL_FORM_LIMIT = 3
XSS_FORM_LIMIT = 2
SQL_PARAMS = ("id", "page", "category", "search", "q", "name", "user", "item")
XSS_PARAMS = ("search", "q", "name", "comment", "message", "title")
TEXTUAL_INPUT_TYPES = {"", "text", "search", "email", "url", "tel"}
PLACEHOLDER_VALUE = "test"

CRITICAL_HEADERS = (
    ("x-content-type-options", "X-Content-Type-Options"),
    ("x-frame-options", "X-Frame-Options"),
    ("content-security-policy", "Content-Security-Policy"),
    ("strict-transport-security", "Strict-Transport-Security"),
)
ADDITIONAL_HEADERS = (
    ("x-xss-protection", "X-XSS-Protection"),
    ("referrer-policy", "Referrer-Policy"),
    ("permissions-policy", "Permissions-Policy"),
)
RATE_LIMIT_HEADERS = (
    "x-ratelimit-limit",
    "x-ratelimit-remaining",
    "retry-after",
    "ratelimit-limit",
    "ratelimit-remaining",
    "ratelimit-policy",
)
TRACING_HEADERS = ("x-request-id", "x-correlation-id", "x-trace-id")
MONITORING_HEADERS = ("cf-ray", "x-amz-cf-id", "x-azure-ref", "server-timing")
DEFAULT_ERROR_PAGE_SERVERS = ("apache", "nginx", "iis")

JS_LIBRARY_PATTERN = re.compile(r"(jquery|bootstrap|angular|react|lodash)[.-](\d+\.\d+\.\d+)", re.IGNORECASE)
LOGIN_FORM_KEYWORDS = ("password", "login", "signin", "username")
SAFE_PASSWORD_AUTOCOMPLETE = {"off", "new-password", "current-password"}
SESSION_COOKIE_MARKERS = ("session", "sessid", "jsessionid", "phpsessid", "connect.sid", "asp.net_sessionid")
SSRF_PARAM_HINTS = ("url", "link", "src", "source", "target", "redirect", "uri", "path")
WEBHOOK_MARKERS = ("webhook", "callback")


def _result(name: str, status: str, description: str, recommendation: Optional[str] = None) -> CheckResult:
    return CheckResult(name=name, status=status, description=description, recommendation=recommendation)


def _probe_paths(context: ScanContext, paths: Sequence[str], **kwargs) -> List[ProbeResult]:
    urls = [context.origin_url(path) for path in paths]
    results = context.client.probe_many(urls, **kwargs)
    failed = sum(1 for result in results if not result.ok)
    if failed:
        logger.debug("%d of %d probes against %s failed", failed, len(results), context.target.base_origin)
    return results


def _replace_query(url: str, pairs: Sequence[Tuple[str, str]]) -> str:
    parsed = urlparse(url)
    return urlunparse(
        (
            parsed.scheme,
            parsed.netloc,
            parsed.path or "/",
            parsed.params,
            urlencode(list(pairs)),
            parsed.fragment,
        )
    )


def _replace_query_param(url: str, key: str, value: str) -> str:
    query = parse_qsl(urlparse(url).query, keep_blank_values=True)
    replaced = False
    new_pairs = []
    for existing_key, existing_value in query:
        if not replaced and existing_key == key:
            new_pairs.append((existing_key, value))
            replaced = True
        else:
            new_pairs.append((existing_key, existing_value))
    if not replaced:
        new_pairs.append((key, value))
    return _replace_query(url, new_pairs)


def _sql_signatures(text: str) -> Set[str]:
    return {pattern.pattern for pattern in SQL_ERROR_PATTERNS if pattern.search(text or "")}


def _header_value(context: ScanContext, name: str) -> Optional[str]:
    value = context.headers.get(name)
    if value is None or not value.strip():
        return None
    return value


# Access control


def _check_access_control(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []

    admin_results = _probe_paths(context, ADMIN_PATHS, allow_redirects=False)
    accessible = [path for path, result in zip(ADMIN_PATHS, admin_results) if result.succeeded()]
    if not accessible:
        checks.append(_result("Access Control - Admin Paths", STATUS_PASS, "No publicly accessible admin paths found"))
    else:
        checks.append(
            _result(
                "Access Control - Admin Paths",
                STATUS_WARNING if len(accessible) <= 2 else STATUS_FAIL,
                f"{len(accessible)} admin paths accessible: {', '.join(accessible)}",
                "Restrict access to administrative interfaces with proper authentication and IP whitelisting",
            )
        )

    listing = any(pattern.search(context.body) for pattern in DIRECTORY_LISTING_PATTERNS)
    if listing:
        checks.append(
            _result(
                "Access Control - Directory Listing",
                STATUS_FAIL,
                "Directory listing is enabled - exposes server file structure",
                "Disable directory listing in web server configuration to prevent information disclosure",
            )
        )
    else:
        checks.append(_result("Access Control - Directory Listing", STATUS_PASS, "Directory listing is properly disabled"))

    file_results = _probe_paths(context, SENSITIVE_FILES, allow_redirects=False)
    exposed = [
        path
        for path, result in zip(SENSITIVE_FILES, file_results)
        if result.succeeded() and result.response is not None and result.response.content.strip()
    ]
    if exposed:
        checks.append(
            _result(
                "Access Control - Sensitive Files",
                STATUS_FAIL,
                f"{len(exposed)} sensitive files exposed: {', '.join(exposed)}",
                "Remove or protect sensitive configuration files from public access",
            )
        )
    else:
        checks.append(_result("Access Control - Sensitive Files", STATUS_PASS, "No sensitive files found in web root"))
    return checks


# Cryptographic failures


def _check_cryptographic(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []
    if context.is_https:
        checks.append(_result("Cryptographic - HTTPS Usage", STATUS_PASS, "Site uses HTTPS encryption"))
    else:
        checks.append(
            _result(
                "Cryptographic - HTTPS Usage",
                STATUS_FAIL,
                "Site is not using HTTPS",
                "Implement HTTPS to encrypt data in transit",
            )
        )

    hsts = _header_value(context, "strict-transport-security")
    if hsts:
        checks.append(
            _result("Cryptographic - HSTS", STATUS_PASS, f"HTTP Strict Transport Security is enabled ({hsts})")
        )
    else:
        checks.append(
            _result(
                "Cryptographic - HSTS",
                STATUS_FAIL,
                "HSTS header is missing",
                "Add Strict-Transport-Security header to enforce HTTPS",
            )
        )

    if context.is_https:
        insecure = [
            element
            for element in context.document.select("script[src], link[href], img[src]")
            if (element.attr("src") or element.attr("href") or "").strip().lower().startswith("http://")
        ]
        if insecure:
            checks.append(
                _result(
                    "Cryptographic - Mixed Content",
                    STATUS_FAIL,
                    f"Site contains mixed content: {len(insecure)} HTTP resources on HTTPS page",
                    "Replace all HTTP resources with HTTPS versions",
                )
            )
        else:
            checks.append(_result("Cryptographic - Mixed Content", STATUS_PASS, "No mixed content detected"))
    return checks


# Injection


def _form_has_csrf_token(form: Element) -> bool:
    for field in form.find_all("input"):
        name = (field.attr("name") or "").lower()
        input_type = (field.attr("type") or "").lower()
        if input_type == "hidden" and any(hint in name for hint in CSRF_FIELD_HINTS):
            return True
        if "_token" in name:
            return True
    return False


def _csrf_check(forms: List[Element]) -> CheckResult:
    unsafe = False
    token_found = False
    for form in forms:
        if not form.find_all("input", "textarea"):
            continue
        if _form_has_csrf_token(form):
            token_found = True
        else:
            unsafe = True
    if unsafe:
        return _result(
            "Injection - CSRF Protection",
            STATUS_FAIL,
            "Forms lack CSRF protection tokens - vulnerable to cross-site request forgery",
            "Implement CSRF tokens in all forms and validate them server-side",
        )
    if token_found:
        return _result("Injection - CSRF Protection", STATUS_PASS, "Forms have CSRF protection tokens")
    return _result("Injection - CSRF Protection", STATUS_WARNING, "Unable to verify CSRF protection")


def _build_form_submission(form: Element, payload: str, *, include_selects: bool) -> Dict[str, str]:
    """Fill a form: text-like fields get the payload, hidden fields keep their value."""
    data: Dict[str, str] = {}
    names = ("input", "textarea", "select") if include_selects else ("input", "textarea")
    for field in form.find_all(*names):
        name = field.attr("name")
        if not name:
            continue
        if field.name == "input":
            input_type = (field.attr("type") or "").strip().lower()
            if input_type == "hidden":
                data[name] = field.attr("value") or ""
            elif input_type in TEXTUAL_INPUT_TYPES:
                data[name] = payload
            else:
                data[name] = PLACEHOLDER_VALUE
        elif field.name == "textarea":
            data[name] = payload
        else:
            data[name] = PLACEHOLDER_VALUE
    return data


def _has_visible_fields(form: Element, *, include_selects: bool) -> bool:
    names = ("input", "textarea", "select") if include_selects else ("input", "textarea")
    for field in form.find_all(*names):
        if field.name == "input" and (field.attr("type") or "").strip().lower() == "hidden":
            continue
        return True
    return False


def _submit_form(context: ScanContext, form: Element, data: Dict[str, str]) -> Tuple[str, ProbeResult]:
    action = (form.attr("action") or "").strip()
    method = (form.attr("method") or "GET").strip().upper()
    timeout = context.settings.active_timeout
    try:
        target = urljoin(context.target.effective_url, action) if action else context.target.effective_url
        if method != "POST":
            target = _replace_query(target, list(data.items()))
    except ValueError as exc:
        logger.warning("Skipping form with unusable action %r: %s", action, exc)
        return action, ProbeResult(url=action, error=str(exc))
    if method == "POST":
        result = context.client.probe(target, method="POST", data=data, timeout=timeout)
    else:
        result = context.client.probe(target, timeout=timeout)
    context.client.pause()
    return action or context.target.effective_url, result


def _active_form_sql_test(context: ScanContext, forms: List[Element]) -> CheckResult:
    baseline = _sql_signatures(context.body)
    vulnerable: List[str] = []
    for form in forms[:SQL_FORM_LIMIT]:
        if not _has_visible_fields(form, include_selects=True):
            continue
        data = _build_form_submission(form, SQL_PAYLOAD, include_selects=True)
        label, result = _submit_form(context, form, data)
        if result.response is None:
            continue
        if _sql_signatures(result.response.text) - baseline:
            vulnerable.append(label)
    if vulnerable:
        return _result(
            "Injection - Active SQL Injection Test",
            STATUS_FAIL,
            f"SQL injection vulnerability detected in forms: {', '.join(vulnerable)}",
            "CRITICAL: Implement parameterized queries and input validation immediately",
        )
    return _result(
        "Injection - Active SQL Injection Test",
        STATUS_PASS,
        "No SQL injection vulnerabilities detected through active testing",
    )


def _active_form_xss_test(context: ScanContext, forms: List[Element]) -> CheckResult:
    vulnerable: List[str] = []
    for form in forms[:XSS_FORM_LIMIT]:
        if not _has_visible_fields(form, include_selects=False):
            continue
        data = _build_form_submission(form, XSS_PAYLOAD, include_selects=False)
        label, result = _submit_form(context, form, data)
        if result.response is None:
            continue
        if XSS_PAYLOAD in result.response.text:
            vulnerable.append(label)
    if vulnerable:
        return _result(
            "Injection - Active XSS Test",
            STATUS_FAIL,
            f"XSS vulnerability detected in forms: {', '.join(vulnerable)}",
            "CRITICAL: Implement proper input sanitization and output encoding immediately",
        )
    return _result(
        "Injection - Active XSS Test",
        STATUS_PASS,
        "No XSS vulnerabilities detected through active testing",
    )


def _fuzz_parameters(context: ScanContext, params: Sequence[str], payload: str, detect) -> List[str]:
    vulnerable: List[str] = []
    for param in params:
        url = _replace_query_param(context.target.effective_url, param, payload)
        result = context.client.probe(url, timeout=context.settings.active_timeout)
        context.client.pause()
        if result.response is not None and detect(result.response.text):
            vulnerable.append(param)
    return vulnerable


def _url_parameter_sql_test(context: ScanContext) -> CheckResult:
    baseline = _sql_signatures(context.body)
    vulnerable = _fuzz_parameters(
        context,
        SQL_PARAMS,
        SQL_PAYLOAD,
        lambda text: bool(_sql_signatures(text) - baseline),
    )
    if vulnerable:
        return _result(
            "Injection - URL Parameter SQL Injection",
            STATUS_FAIL,
            f"SQL injection vulnerability found in URL parameters: {', '.join(vulnerable)} with payload: {SQL_PAYLOAD}",
            "CRITICAL: Sanitize all URL parameters and use parameterized queries",
        )
    return _result(
        "Injection - URL Parameter SQL Injection",
        STATUS_PASS,
        "No SQL injection vulnerabilities detected in URL parameters",
    )


def _url_parameter_xss_test(context: ScanContext) -> CheckResult:
    vulnerable = _fuzz_parameters(context, XSS_PARAMS, XSS_PAYLOAD, lambda text: XSS_PAYLOAD in text)
    if vulnerable:
        return _result(
            "Injection - URL Parameter XSS",
            STATUS_FAIL,
            f"XSS vulnerability found in URL parameters: {', '.join(vulnerable)}",
            "CRITICAL: Implement proper input validation and output encoding for all parameters",
        )
    return _result(
        "Injection - URL Parameter XSS",
        STATUS_PASS,
        "No XSS vulnerabilities detected in URL parameters",
    )


def _vulnerable_endpoints(context: ScanContext) -> Optional[CheckResult]:
    paths = [path for path, _ in VULNERABLE_ENDPOINTS]
    results = _probe_paths(context, paths)
    found: List[str] = []
    with_forms = 0
    for (_, label), result in zip(VULNERABLE_ENDPOINTS, results):
        if result.status_code != 200:
            continue
        found.append(label)
        if Document.parse(result.response.text).exists("form"):
            with_forms += 1
    if not found:
        return None
    description = f"Found {len(found)} potentially vulnerable endpoints: {', '.join(found)}"
    if with_forms:
        return _result(
            "Injection - Vulnerable Endpoints",
            STATUS_WARNING,
            description,
            "Review endpoints with forms for proper input validation and security controls",
        )
    return _result("Injection - Vulnerable Endpoints", STATUS_PASS, description)


def _check_injection(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []
    body = context.body

    if _sql_signatures(body):
        checks.append(
            _result(
                "Injection - SQL Error Disclosure",
                STATUS_FAIL,
                "SQL error messages found in response - potential SQL injection vulnerability",
                "Implement proper error handling, input validation, and parameterized queries",
            )
        )
    else:
        checks.append(_result("Injection - SQL Error Disclosure", STATUS_PASS, "No SQL error messages detected"))

    if _header_value(context, "x-xss-protection") or _header_value(context, "content-security-policy"):
        checks.append(_result("Injection - XSS Protection", STATUS_PASS, "XSS protection mechanisms detected"))
    else:
        checks.append(
            _result(
                "Injection - XSS Protection",
                STATUS_FAIL,
                "No XSS protection headers found - vulnerable to cross-site scripting",
                "Implement Content-Security-Policy and X-XSS-Protection headers",
            )
        )

    forms = context.document.elements("form")
    if forms:
        checks.append(_csrf_check(forms))

    markers = [label for label, pattern in COMMAND_INJECTION_PATTERNS if pattern.search(body)]
    if markers:
        checks.append(
            _result(
                "Injection - Command Injection Risk",
                STATUS_FAIL,
                f"Potential command injection vulnerabilities detected: server-side code markers {', '.join(markers)}",
                "Sanitize all user inputs and avoid system command execution",
            )
        )

    if context.settings.allow_active_probing:
        if forms:
            checks.append(_active_form_sql_test(context, forms))
            checks.append(_active_form_xss_test(context, forms))
        checks.append(_url_parameter_sql_test(context))
        checks.append(_url_parameter_xss_test(context))
    else:
        logger.info("Active probing disabled, skipping payload probes against %s", context.target.effective_url)

    endpoints = _vulnerable_endpoints(context)
    if endpoints is not None:
        checks.append(endpoints)
    return checks


# Insecure design


def _check_insecure_design(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []
    lowered = context.body.lower()
    leaks = [marker for marker in STACK_TRACE_MARKERS if marker in lowered]
    if leaks:
        checks.append(
            _result(
                "Insecure Design - Error Information",
                STATUS_FAIL,
                f"Detailed error information exposed ({', '.join(leaks)})",
                "Implement generic error messages to avoid information disclosure",
            )
        )
    else:
        checks.append(_result("Insecure Design - Error Information", STATUS_PASS, "Error handling appears secure"))

    rate_headers = [name for name in RATE_LIMIT_HEADERS if name in context.headers]
    if rate_headers:
        checks.append(
            _result(
                "Insecure Design - Rate Limiting",
                STATUS_PASS,
                f"Rate limiting headers detected: {', '.join(rate_headers)}",
            )
        )
    else:
        checks.append(
            _result(
                "Insecure Design - Rate Limiting",
                STATUS_WARNING,
                "No rate limiting headers found",
                "Implement rate limiting to prevent abuse",
            )
        )
    return checks


# Security misconfiguration


def _csp_weaknesses(csp: str) -> List[str]:
    weaknesses: List[str] = []
    lowered = csp.lower()
    if "'unsafe-inline'" in lowered:
        weaknesses.append("'unsafe-inline'")
    if "'unsafe-eval'" in lowered:
        weaknesses.append("'unsafe-eval'")
    tokens = re.split(r"[\s;]+", lowered)
    if any("*" in token for token in tokens):
        weaknesses.append("wildcard sources")
    if any(token == "data:" for token in tokens):
        weaknesses.append("data: scheme")
    return weaknesses


def _check_misconfiguration(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []

    server = _header_value(context, "server")
    if server:
        checks.append(
            _result(
                "Security Config - Server Disclosure",
                STATUS_WARNING,
                f"Server information disclosed: {server}",
                "Hide server version information to reduce attack surface",
            )
        )
    else:
        checks.append(_result("Security Config - Server Disclosure", STATUS_PASS, "Server information properly hidden"))

    powered_by = _header_value(context, "x-powered-by")
    if powered_by:
        checks.append(
            _result(
                "Security Config - Technology Disclosure",
                STATUS_WARNING,
                f"Technology stack disclosed: {powered_by}",
                "Remove X-Powered-By header to hide technology stack",
            )
        )
    else:
        checks.append(
            _result("Security Config - Technology Disclosure", STATUS_PASS, "Technology stack properly hidden")
        )

    missing_critical = [label for key, label in CRITICAL_HEADERS if _header_value(context, key) is None]
    if missing_critical:
        checks.append(
            _result(
                "Security Config - Critical Headers",
                STATUS_FAIL,
                f"Missing critical security headers: {', '.join(missing_critical)}",
                f"Implement missing critical headers: {', '.join(missing_critical)}",
            )
        )
    else:
        checks.append(
            _result("Security Config - Critical Headers", STATUS_PASS, "All critical security headers are present")
        )

    missing_additional = [label for key, label in ADDITIONAL_HEADERS if _header_value(context, key) is None]
    if missing_additional:
        checks.append(
            _result(
                "Security Config - Additional Headers",
                STATUS_WARNING,
                f"Missing recommended security headers: {', '.join(missing_additional)}",
                f"Consider implementing: {', '.join(missing_additional)}",
            )
        )
    else:
        checks.append(
            _result("Security Config - Additional Headers", STATUS_PASS, "All recommended security headers are present")
        )

    csp = _header_value(context, "content-security-policy")
    if csp:
        weaknesses = _csp_weaknesses(csp)
        if weaknesses:
            checks.append(
                _result(
                    "Security Config - CSP Effectiveness",
                    STATUS_WARNING,
                    f"Content Security Policy contains potentially unsafe directives: {', '.join(weaknesses)}",
                    "Review CSP for unsafe-inline, unsafe-eval, wildcards, and data: schemes",
                )
            )
        else:
            checks.append(
                _result(
                    "Security Config - CSP Effectiveness",
                    STATUS_PASS,
                    "Content Security Policy is properly configured",
                )
            )

    status_code = context.response.status_code
    if status_code >= 400:
        server_name = (server or "").lower()
        stock_page = status_code == 404 and any(name in server_name for name in DEFAULT_ERROR_PAGE_SERVERS)
        if stock_page:
            checks.append(
                _result(
                    "Security Config - Error Pages",
                    STATUS_WARNING,
                    f"Default server error page detected (HTTP {status_code}, {server})",
                    "Implement custom error pages to avoid information disclosure",
                )
            )
        else:
            checks.append(
                _result(
                    "Security Config - Error Pages",
                    STATUS_PASS,
                    f"Custom error handling implemented (HTTP {status_code})",
                )
            )
    return checks


# Vulnerable and outdated components


def _check_outdated_components(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []
    libraries: List[str] = []
    for script in context.document.select("script[src]"):
        for match in JS_LIBRARY_PATTERN.finditer(script.attr("src") or ""):
            entry = f"{match.group(1).lower()} v{match.group(2)}"
            if entry not in libraries:
                libraries.append(entry)
    if libraries:
        checks.append(
            _result(
                "Outdated Components - JavaScript Libraries",
                STATUS_WARNING,
                f"Detected libraries: {', '.join(libraries)}",
                "Check if JavaScript libraries are up to date and have no known vulnerabilities",
            )
        )
    else:
        checks.append(
            _result(
                "Outdated Components - JavaScript Libraries",
                STATUS_PASS,
                "No identifiable JavaScript library versions found",
            )
        )

    generator = context.document.meta_content(name="generator") or ""
    body = context.body
    if "wp-content" in body or "wp-includes" in body or "wordpress" in generator.lower():
        detail = f" ({generator})" if "wordpress" in generator.lower() else ""
        checks.append(
            _result(
                "Outdated Components - WordPress",
                STATUS_WARNING,
                f"WordPress detected{detail} - version check recommended",
                "Ensure WordPress core, themes, and plugins are updated to latest versions",
            )
        )
    return checks


# Identification and authentication failures


def _parse_cookies(header: str) -> List[Tuple[str, bool, bool]]:
    """(name, secure, httponly) for each cookie in one Set-Cookie header."""
    cookie = SimpleCookie()
    try:
        cookie.load(header)
    except CookieError:
        logger.debug("Could not parse Set-Cookie header: %s", header)
    if len(cookie):
        return [(morsel.key, bool(morsel["secure"]), bool(morsel["httponly"])) for morsel in cookie.values()]
    # SimpleCookie drops the whole header on attributes it does not know, e.g. Partitioned.
    parts = [part.strip() for part in header.split(";")]
    name = parts[0].split("=", 1)[0].strip()
    if not name:
        return []
    flags = {part.split("=", 1)[0].strip().lower() for part in parts[1:]}
    return [(name, "secure" in flags, "httponly" in flags)]


def _check_authentication(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []
    login_forms = [
        form
        for form in context.document.elements("form")
        if any(keyword in form.markup.lower() for keyword in LOGIN_FORM_KEYWORDS)
    ]
    if login_forms:
        if context.is_https:
            checks.append(
                _result("Authentication - Secure Login", STATUS_PASS, "Login forms are served over HTTPS")
            )
        else:
            checks.append(
                _result(
                    "Authentication - Secure Login",
                    STATUS_FAIL,
                    f"{len(login_forms)} login form(s) are not served over HTTPS",
                    "Serve login forms over HTTPS to protect credentials",
                )
            )

        risky = [
            field
            for field in context.document.select('input[type="password"]')
            if (field.attr("autocomplete") or "").strip().lower() not in SAFE_PASSWORD_AUTOCOMPLETE
        ]
        if risky:
            checks.append(
                _result(
                    "Authentication - Password Autocomplete",
                    STATUS_WARNING,
                    f"{len(risky)} password field(s) may have insecure autocomplete settings",
                    "Configure appropriate autocomplete attributes on password fields",
                )
            )
        else:
            checks.append(
                _result(
                    "Authentication - Password Autocomplete",
                    STATUS_PASS,
                    "Password fields have proper autocomplete configuration",
                )
            )

    session_cookies = []
    for header in context.headers.get_all("set-cookie"):
        for name, secure, httponly in _parse_cookies(header):
            if any(marker in name.lower() for marker in SESSION_COOKIE_MARKERS):
                session_cookies.append((name, secure, httponly))
    if session_cookies:
        weak = []
        for name, secure, httponly in session_cookies:
            missing = [flag for flag, present in (("Secure", secure), ("HttpOnly", httponly)) if not present]
            if missing:
                weak.append(f"{name} (missing {', '.join(missing)})")
        if weak:
            checks.append(
                _result(
                    "Authentication - Session Cookie Security",
                    STATUS_FAIL,
                    f"Session cookies lack proper security flags: {'; '.join(weak)}",
                    "Add Secure and HttpOnly flags to all session cookies",
                )
            )
        else:
            checks.append(
                _result(
                    "Authentication - Session Cookie Security",
                    STATUS_PASS,
                    f"Session cookies are properly secured ({len(session_cookies)} checked)",
                )
            )
    return checks


# Software and data integrity failures


def _is_external(src: str, context: ScanContext) -> bool:
    try:
        parsed = urlparse(urljoin(context.target.effective_url, src.strip()))
        hostname = parsed.hostname or ""
    except ValueError:
        # Unparseable sources cannot be shown to be same-origin.
        return True
    if parsed.scheme not in {"http", "https"}:
        return False
    return hostname != context.target.hostname


def _check_data_integrity(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []
    external = [
        script
        for script in context.document.select("script[src]")
        if _is_external(script.attr("src") or "", context)
    ]
    if external:
        with_sri = sum(1 for script in external if (script.attr("integrity") or "").strip())
        status = STATUS_PASS if with_sri == len(external) else STATUS_FAIL
        checks.append(
            _result(
                "Data Integrity - Subresource Integrity",
                status,
                f"{with_sri} of {len(external)} external scripts use SRI",
                "Add integrity attributes to external scripts and stylesheets",
            )
        )

    csp = _header_value(context, "content-security-policy")
    strict = bool(csp) and (
        "'strict-dynamic'" in csp or "'nonce-" in csp or "'unsafe-inline'" not in csp
    )
    if strict:
        checks.append(
            _result("Data Integrity - Content Security Policy", STATUS_PASS, "Strict Content Security Policy implemented")
        )
    elif csp:
        checks.append(
            _result(
                "Data Integrity - Content Security Policy",
                STATUS_WARNING,
                "Basic Content Security Policy found ('unsafe-inline' without nonce or strict-dynamic)",
                "Implement a strict Content Security Policy to prevent code injection",
            )
        )
    else:
        checks.append(
            _result(
                "Data Integrity - Content Security Policy",
                STATUS_FAIL,
                "No Content Security Policy detected",
                "Implement a strict Content Security Policy to prevent code injection",
            )
        )
    return checks


# Security logging and monitoring failures


def _check_logging(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []
    tracing = [name for name in TRACING_HEADERS if name in context.headers]
    if tracing:
        checks.append(
            _result("Logging - Request Tracing", STATUS_PASS, f"Request tracing headers found: {', '.join(tracing)}")
        )
    else:
        checks.append(
            _result(
                "Logging - Request Tracing",
                STATUS_WARNING,
                "No request tracing headers detected",
                "Implement request tracing headers for better monitoring",
            )
        )

    monitoring = [name for name in MONITORING_HEADERS if name in context.headers]
    if monitoring:
        checks.append(
            _result(
                "Logging - Security Monitoring",
                STATUS_PASS,
                f"Security monitoring/WAF indicators detected: {', '.join(monitoring)}",
            )
        )
    else:
        checks.append(
            _result(
                "Logging - Security Monitoring",
                STATUS_WARNING,
                "No obvious security monitoring detected",
                "Consider implementing a Web Application Firewall (WAF) for monitoring and protection",
            )
        )
    return checks


# Server-side request forgery


def _check_ssrf(context: ScanContext) -> List[CheckResult]:
    checks: List[CheckResult] = []
    query = parse_qsl(urlparse(context.target.effective_url).query, keep_blank_values=True)
    suspicious: List[str] = []
    for key, _ in query:
        if any(hint in key.lower() for hint in SSRF_PARAM_HINTS) and key not in suspicious:
            suspicious.append(key)
    if suspicious:
        checks.append(
            _result(
                "SSRF - Suspicious URL Parameters",
                STATUS_WARNING,
                f"Found potentially vulnerable URL parameters: {', '.join(suspicious)}",
                "Validate and sanitize URL parameters to prevent SSRF attacks",
            )
        )

    url_inputs = context.document.select('input[type="url"], input[name*="url"], input[name*="link"]')
    if url_inputs:
        checks.append(
            _result(
                "SSRF - URL Input Fields",
                STATUS_WARNING,
                f"Found {len(url_inputs)} URL input field(s)",
                "Implement proper URL validation and allowlisting for URL inputs",
            )
        )

    lowered = context.body.lower()
    found = [marker for marker in WEBHOOK_MARKERS if marker in lowered]
    if found:
        checks.append(
            _result(
                "SSRF - Webhook/Callback Functionality",
                STATUS_WARNING,
                f"Webhook or callback functionality detected ({', '.join(found)})",
                "Ensure webhook URLs are properly validated and use allowlisting",
            )
        )
    return checks


SECURITY_GROUPS = (
    ("access_control", _check_access_control),
    ("cryptographic", _check_cryptographic),
    ("injection", _check_injection),
    ("insecure_design", _check_insecure_design),
    ("misconfiguration", _check_misconfiguration),
    ("outdated_components", _check_outdated_components),
    ("authentication", _check_authentication),
    ("data_integrity", _check_data_integrity),
    ("logging", _check_logging),
    ("ssrf", _check_ssrf),
)
