"""Template placeholder extraction, substitution and validation.

Two syntaxes are recognised and map to the same variable:

    {{ article.title }}   double-brace, whitespace tolerant (preferred)
    {article.title}       single-brace (legacy)

Substitution is a single left-to-right scan in which the double-brace form
is tried first at every position, so a substituted value is never rescanned
and a `{{x}}` is never mistaken for `{` + `{x}` + `}`.

Everything here is synchronous and side-effect free.
"""

import json
import re
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from contentgen.errors import InvalidTemplate
from contentgen.models import GenerationConfig, Substitution, Variable, VariableType

NAME_PATTERN = r"[a-zA-Z_][a-zA-Z0-9_.]*"
_NAME_RE = re.compile(rf"^{NAME_PATTERN}$")

# Both forms in one alternation; the double-brace branch wins at a position.
_PLACEHOLDER_RE = re.compile(
    rf"\{{\{{\s*(?P<double>{NAME_PATTERN})\s*\}}\}}"
    rf"|\{{(?P<single>{NAME_PATTERN})\}}"
)

# Anything that looks like a placeholder, valid name or not. Single-brace
# candidates exclude whitespace and JSON punctuation so that inline JSON
# examples in prompt bodies are not treated as placeholders.
_DOUBLE_CANDIDATE_RE = re.compile(r"\{\{([^{}]*)\}\}")
_SINGLE_CANDIDATE_RE = re.compile(r"(?<!\{)\{([^{}\s\"':,\[\]]+)\}(?!\})")

_STEP_RE = re.compile(r"^step_?\d+(\.|$)")
OUTPUT_SUFFIX = "_output"

_MISSING = object()


def _variable_type(name: str) -> VariableType:
    if name.startswith("article."):
        return "article"
    if name.startswith(("blog.", "account.")):
        return "id"
    if _STEP_RE.match(name) or name.endswith(OUTPUT_SUFFIX):
        return "step_output"
    return "custom"


def _display_name(name: str) -> str:
    words = re.split(r"[._]+", name)
    return " ".join(w.capitalize() for w in words if w)


def extract(template_body: Optional[str]) -> list[Variable]:
    """Return placeholders in order of first appearance, deduplicated by name."""
    seen: set[str] = set()
    variables = []
    for match in _PLACEHOLDER_RE.finditer(template_body or ""):
        name = match.group("double") or match.group("single")
        if name in seen:
            continue
        seen.add(name)
        variables.append(Variable(
            name=name,
            type=_variable_type(name),
            display_name=_display_name(name),
            position=match.start(),
        ))
    return variables


def output_dependencies(template_body: Optional[str]) -> set[str]:
    """Categories whose `<category>_output` the body references."""
    return {
        v.name[: -len(OUTPUT_SUFFIX)]
        for v in extract(template_body)
        if v.name.endswith(OUTPUT_SUFFIX)
        and "." not in v.name
        and len(v.name) > len(OUTPUT_SUFFIX)
    }


def _lookup(context: Mapping[str, Any], name: str) -> Any:
    """Flat key first ("article.title"), then a dotted walk through mappings."""
    if name in context:
        return context[name]
    current: Any = context
    for part in name.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def render_value(value: Any) -> str:
    """Render a context value as prompt text. Mappings and lists become JSON."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def substitute(
    template_body: Optional[str],
    context: Mapping[str, Any],
) -> Substitution:
    """Replace placeholders with context values.

    Placeholders with no value become the empty string and their names are
    recorded in `missing`.
    """
    missing: set[str] = set()

    def replace(match: re.Match) -> str:
        name = match.group("double") or match.group("single")
        value = _lookup(context, name)
        if value is _MISSING:
            missing.add(name)
            return ""
        return render_value(value)

    text = _PLACEHOLDER_RE.sub(replace, template_body or "")
    return Substitution(text=text, missing=missing)


def _field(template: Any, key: str) -> Any:
    if isinstance(template, Mapping):
        return template.get(key)
    return getattr(template, key, None)


def _check_balanced(body: str) -> None:
    depth = 0
    for index, char in enumerate(body):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                raise InvalidTemplate(
                    "Unbalanced braces in prompt body",
                    details={"position": index},
                )
    if depth != 0:
        raise InvalidTemplate(
            "Unbalanced braces in prompt body",
            details={"unclosed": depth},
        )


def _check_parameters(parameters: Any) -> None:
    """Generation parameters must build a GenerationConfig."""
    if parameters is None:
        return
    if not isinstance(parameters, Mapping):
        raise InvalidTemplate(
            "Parameters must be an object",
            details={"type": type(parameters).__name__},
        )
    try:
        GenerationConfig.from_parameters(dict(parameters))
    except ValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", "Invalid value"),
            }
            for err in e.errors()
        ]
        raise InvalidTemplate(
            "Invalid generation parameters",
            details={"errors": errors},
        ) from e


def validate(template: Any) -> None:
    """Raise InvalidTemplate unless the template can be saved.

    Accepts a mapping or any object exposing name, category and
    prompt_body, plus optional generation parameters.
    """
    empty = [
        key for key in ("name", "category", "prompt_body")
        if not str(_field(template, key) or "").strip()
    ]
    if empty:
        raise InvalidTemplate(
            f"Required fields are empty: {', '.join(empty)}",
            details={"fields": empty},
        )

    body = _field(template, "prompt_body")
    _check_balanced(body)

    invalid = []
    for match in _DOUBLE_CANDIDATE_RE.finditer(body):
        name = match.group(1).strip()
        if not _NAME_RE.match(name):
            invalid.append(name)
    for match in _SINGLE_CANDIDATE_RE.finditer(body):
        name = match.group(1)
        if not _NAME_RE.match(name):
            invalid.append(name)
    if invalid:
        raise InvalidTemplate(
            "Invalid placeholder names",
            details={"names": invalid},
        )

    _check_parameters(_field(template, "parameters"))
