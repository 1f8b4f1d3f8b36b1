"""
Hand-authored architectural violation catalogue.
Each rule is a regex matched against submitted framework source code. Order in
STATIC_RULES is the order detection reports them in; critical rules block code
generation for callers that enforce it.
"""

from typing import Dict, List

from .schema import ViolationRule


def _static(id: str, pattern: str, description: str, correction_id: str, severity: str) -> ViolationRule:
    return ViolationRule(
        id=id,
        severity=severity,
        pattern=pattern,
        description=description,
        correction_id=correction_id,
        pattern_type="regex",
        origin="static",
        review_status="approved",
    )


STATIC_RULES: List[ViolationRule] = [

    # Critical: blocks code generation

    _static(
        "inline-db-in-handler",
        r"router\.(get|post|put|delete|patch).*\{[^}]*(\.query|pool\.|db\.)",
        "Database calls inside a route handler closure. Route handlers only dispatch; "
        "database access belongs in the repository layer, reached through a service.",
        "route-handler-dispatcher-only",
        "critical",
    ),
    _static(
        "service-construction-in-handler",
        r"router\.(get|post|put|delete|patch).*\{[^}]*\w+Service\s*\(",
        "A service is constructed inside a route handler. Services are injected through "
        "the request context, never built per request.",
        "dependency-injection-via-context",
        "critical",
    ),

    # Error: wrong architecture

    _static(
        "framework-import-in-service",
        r"^import\s+Hummingbird\b",
        "The web framework is imported in a service or repository file. The service layer "
        "stays framework-agnostic; only controllers, middleware and application setup import it.",
        "service-layer-no-hummingbird",
        "error",
    ),
    _static(
        "raw-error-thrown-from-handler",
        r"throw\s+(?!HTTPError|AppError)\w+Error",
        "A raw or third-party error is thrown from a handler. Wrap errors in AppError so "
        "responses stay consistent and internals do not leak.",
        "typed-errors-app-error",
        "error",
    ),
    _static(
        "domain-model-across-http-boundary",
        r"func\s+\w+\([^)]*\)\s*(async\s+)?(throws\s+)?->\s*(?!Response|some ResponseGenerator)\w+(Model|Entity)\b",
        "A domain model is returned straight from a route handler. Convert to a DTO at "
        "every HTTP boundary.",
        "dtos-at-boundaries",
        "error",
    ),
    _static(
        "domain-model-in-request-decode",
        r"request\.decode\(as:\s*\w+(Model|Entity)\.self",
        "A domain model is used in request.decode(). Decode into a DTO, then convert in "
        "the service layer.",
        "dtos-at-boundaries",
        "error",
    ),
    _static(
        "direct-env-access",
        r"(ProcessInfo\.processInfo\.environment\[|getenv\(|ProcessInfo\.environment)",
        "Environment variables read directly in application code. Load configuration once "
        "at startup into a configuration type.",
        "centralized-configuration",
        "error",
    ),
    _static(
        "hardcoded-url",
        r"(let|var)\s+\w+\s*(:\s*String)?\s*=\s*\"https?://[^\"]+\"",
        "Hardcoded URL in source. Endpoints and external addresses come from configuration.",
        "centralized-configuration",
        "error",
    ),
    _static(
        "hardcoded-credentials",
        r"(let|var)\s+\w*(password|secret|key|token|apiKey|apiSecret)\w*\s*=\s*\"[^\"]+\"",
        "Hardcoded credential in source. Secrets are loaded from the environment at runtime "
        "and never committed.",
        "secure-configuration",
        "error",
    ),
    _static(
        "swallowed-error",
        r"catch\s*\{\s*\}",
        "Empty catch block. Log the error, convert it to AppError, or handle it explicitly.",
        "typed-errors-app-error",
        "error",
    ),
    _static(
        "print-in-error-handler",
        r"catch[^}]*\{[^}]*(print\(|debugPrint\()",
        "print() used in error handling. Use the structured Logger with a proper level.",
        "structured-logging",
        "error",
    ),
    _static(
        "sleep-in-handler",
        r"router\.(get|post|put|delete|patch).*\{[^}]*(\bsleep\(|Thread\.sleep|usleep\()",
        "Blocking sleep inside a route handler. Use Task.sleep so the thread pool keeps serving.",
        "async-concurrency-patterns",
        "error",
    ),
    _static(
        "blocking-sleep-in-async",
        r"(async\s+func|async\s+throws|async\s*\{)[^}]*(\bsleep\(|Thread\.sleep|usleep\()",
        "Blocking sleep in an async context. Use Task.sleep(for:) to yield the cooperative pool.",
        "async-concurrency-patterns",
        "error",
    ),
    _static(
        "nonisolated-unsafe-usage",
        r"nonisolated\s*\(unsafe\)",
        "nonisolated(unsafe) bypasses strict concurrency checking. Use actor isolation or "
        "Sendable types instead.",
        "actor-for-shared-state",
        "error",
    ),

    # Warning: suboptimal patterns

    _static(
        "shared-mutable-state-without-actor",
        r"var\s+\w+\s*:\s*\[.*\]\s*=\s*\[.*\]",
        "Mutable collection stored as a var without actor protection. Shared mutable state "
        "needs an actor or explicit synchronisation under strict concurrency.",
        "actor-for-shared-state",
        "warning",
    ),
    _static(
        "nonisolated-context-access",
        r"nonisolated.*context\.\w+",
        "Request context accessed from a nonisolated context. Pass the context explicitly "
        "instead of capturing it across isolation boundaries.",
        "request-context-di",
        "warning",
    ),
    _static(
        "magic-numbers",
        r"(timeout|limit|maxConnections|port|bufferSize|retryCount)\s*[=:]\s*\d{2,}",
        "Magic number used for a configuration value. Name it or load it from configuration.",
        "centralized-configuration",
        "warning",
    ),
]


def get_static_rules() -> List[ViolationRule]:
    """Return the catalogue in authored order."""
    return list(STATIC_RULES)


def rules_by_id() -> Dict[str, ViolationRule]:
    return {rule.id: rule for rule in STATIC_RULES}
