"""
Placeholder grammar shared by the renderer, the validator and reference
extraction.

    {{ var:name[:modifier] [| where: clause] }}
    {{ stat:name.metric[:scope] [| where: clause] }}
    {{#if condition}} then {{else}} otherwise {{/if}}

The patterns accept any identifier as modifier, metric or scope so that a
misspelt keyword is still recognised as a placeholder: the renderer
resolves it to an empty string and the validator reports it.
"""

import re

IDENT = r"[A-Za-z0-9_.]+"
WORD = r"[A-Za-z0-9_]+"
_WHERE = r"(?:\s*\|\s*where:\s*(?P<{0}>[\s\S]*?))?"

VAR_PLACEHOLDER = (
    rf"\{{\{{\s*var:(?P<var_name>{IDENT})(?::(?P<var_modifier>{WORD}))?"
    + _WHERE.format("var_where")
    + r"\s*\}\}"
)

STAT_PLACEHOLDER = (
    rf"\{{\{{\s*stat:(?P<stat_name>{IDENT})\.(?P<stat_metric>{WORD})(?::(?P<stat_scope>{WORD}))?"
    + _WHERE.format("stat_where")
    + r"\s*\}\}"
)

VAR_PLACEHOLDER_RE = re.compile(VAR_PLACEHOLDER)
STAT_PLACEHOLDER_RE = re.compile(STAT_PLACEHOLDER)

# One scan for both kinds, so substituted text is never scanned again
PLACEHOLDER_RE = re.compile(f"{VAR_PLACEHOLDER}|{STAT_PLACEHOLDER}")

# var: operand inside an {{#if}} condition
VAR_ATOM_RE = re.compile(rf"var:({IDENT})(?::({WORD}))?")

# ============================================================
# CONDITIONAL BLOCKS
# ============================================================

_IF_OPEN = r"\{\{#if"
_ELSE_TAG = r"\{\{/?else\}\}"
_IF_CLOSE = r"\{\{/?if\}\}"

# Branch text may not contain another block tag (blocks do not nest)
_THEN_TEXT = rf"(?:(?!{_IF_OPEN}|{_ELSE_TAG}|{_IF_CLOSE})[\s\S])*"
_ELSE_TEXT = rf"(?:(?!{_IF_OPEN}|{_IF_CLOSE})[\s\S])*"

CONDITIONAL_RE = re.compile(
    rf"{_IF_OPEN}\s+(?P<condition>[^}}]+)\}}\}}"
    rf"(?P<then>{_THEN_TEXT})"
    rf"(?:{_ELSE_TAG}(?P<otherwise>{_ELSE_TEXT}))?"
    rf"{_IF_CLOSE}"
)

# Opening tag alone, so the condition of an unclosed block is still found
IF_HEAD_RE = re.compile(rf"{_IF_OPEN}\s+(?P<condition>[^}}]+)\}}\}}")

# ============================================================
# STRUCTURAL CHECKS
# ============================================================

OPEN_TAG_RE = re.compile(r"\{\{")
CLOSE_TAG_RE = re.compile(r"\}\}")
IF_OPEN_RE = re.compile(_IF_OPEN)
IF_CLOSE_RE = re.compile(_IF_CLOSE)

# Anything that starts like a var:/stat: placeholder ...
VAR_SPAN_RE = re.compile(r"\{\{\s*var:[^}]*\}\}")
STAT_SPAN_RE = re.compile(r"\{\{\s*stat:[^}]*\}\}")

# ... and the shape it has to have
WELL_FORMED_VAR_RE = re.compile(
    rf"\{{\{{\s*var:{IDENT}(?::{WORD})?(?:\s*\|\s*where:\s*[^}}]*)?\s*\}}\}}"
)
WELL_FORMED_STAT_RE = re.compile(
    rf"\{{\{{\s*stat:{IDENT}\.{WORD}(?::{WORD})?(?:\s*\|\s*where:\s*[^}}]*)?\s*\}}\}}"
)
