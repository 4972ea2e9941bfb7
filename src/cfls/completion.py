"""Completion candidates for CFML documents.

Candidates come from three places: CFML tags, built-in functions and the
identifiers already present in the open document. No parsing is done;
the word under the cursor is found with a regular expression.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    MarkupContent,
    MarkupKind,
)

from cfls.config import CompletionSettings

_WORD_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_WORD_TAIL_RE = re.compile(r"[A-Za-z0-9_]*$")

SOURCE_TAG = "tag"
SOURCE_FUNCTION = "function"
SOURCE_DOCUMENT = "document"


@dataclass(frozen=True)
class BuiltinDoc:
    detail: str
    documentation: str


TAGS: dict[str, BuiltinDoc] = {
    "cfabort": BuiltinDoc("<cfabort>", "Stops processing of the current page."),
    "cfargument": BuiltinDoc("<cfargument name=\"\">", "Declares a parameter of a `cffunction`."),
    "cfbreak": BuiltinDoc("<cfbreak>", "Exits the enclosing `cfloop`."),
    "cfcatch": BuiltinDoc("<cfcatch type=\"any\">", "Handles exceptions raised inside `cftry`."),
    "cfcomponent": BuiltinDoc("<cfcomponent>", "Defines a ColdFusion component (CFC)."),
    "cfdump": BuiltinDoc("<cfdump var=\"\">", "Outputs the contents of a variable for debugging."),
    "cfelse": BuiltinDoc("<cfelse>", "Alternative branch of a `cfif`."),
    "cfelseif": BuiltinDoc("<cfelseif expression>", "Additional condition of a `cfif`."),
    "cffunction": BuiltinDoc("<cffunction name=\"\">", "Defines a function inside a component or page."),
    "cfif": BuiltinDoc("<cfif expression>", "Evaluates a boolean expression."),
    "cfinclude": BuiltinDoc("<cfinclude template=\"\">", "Embeds another template in the current page."),
    "cfloop": BuiltinDoc("<cfloop>", "Repeats a block over an index, condition, list, array or query."),
    "cfoutput": BuiltinDoc("<cfoutput>", "Evaluates `#expressions#` in its body and writes the result."),
    "cfparam": BuiltinDoc("<cfparam name=\"\" default=\"\">", "Declares a variable with a default value."),
    "cfquery": BuiltinDoc("<cfquery name=\"\" datasource=\"\">", "Runs SQL against a data source."),
    "cfqueryparam": BuiltinDoc("<cfqueryparam value=\"\">", "Binds a typed parameter inside `cfquery`."),
    "cfreturn": BuiltinDoc("<cfreturn expression>", "Returns a value from a `cffunction`."),
    "cfscript": BuiltinDoc("<cfscript>", "Encloses CFScript code."),
    "cfset": BuiltinDoc("<cfset name = value>", "Assigns a value to a variable."),
    "cfthrow": BuiltinDoc("<cfthrow message=\"\">", "Raises a developer-specified exception."),
    "cftry": BuiltinDoc("<cftry>", "Wraps code whose exceptions are handled by `cfcatch`."),
}

FUNCTIONS: dict[str, BuiltinDoc] = {
    "arrayAppend": BuiltinDoc("arrayAppend(array, value)", "Appends an element to an array."),
    "arrayLen": BuiltinDoc("arrayLen(array)", "Returns the number of elements in an array."),
    "arrayNew": BuiltinDoc("arrayNew(dimension)", "Creates an array of 1 to 3 dimensions."),
    "dateFormat": BuiltinDoc("dateFormat(date, mask)", "Formats a date value."),
    "isDefined": BuiltinDoc("isDefined(variableName)", "Checks whether a variable exists."),
    "isNumeric": BuiltinDoc("isNumeric(value)", "Checks whether a value can be converted to a number."),
    "len": BuiltinDoc("len(value)", "Returns the length of a string or binary object."),
    "listAppend": BuiltinDoc("listAppend(list, value)", "Appends an element to a delimited list."),
    "listLen": BuiltinDoc("listLen(list)", "Returns the number of elements in a delimited list."),
    "lCase": BuiltinDoc("lCase(string)", "Converts a string to lower case."),
    "now": BuiltinDoc("now()", "Returns the current date and time."),
    "queryExecute": BuiltinDoc("queryExecute(sql, params, options)", "Runs a SQL query from CFScript."),
    "replace": BuiltinDoc("replace(string, substring1, substring2, scope)", "Replaces occurrences of a substring."),
    "structKeyExists": BuiltinDoc("structKeyExists(struct, key)", "Checks whether a structure contains a key."),
    "structNew": BuiltinDoc("structNew()", "Creates an empty structure."),
    "trim": BuiltinDoc("trim(string)", "Removes leading and trailing whitespace."),
    "uCase": BuiltinDoc("uCase(string)", "Converts a string to upper case."),
    "writeDump": BuiltinDoc("writeDump(var)", "Outputs the contents of a variable for debugging."),
    "writeOutput": BuiltinDoc("writeOutput(string)", "Writes a string to the page output."),
}

_DOCS_BY_SOURCE: dict[str, dict[str, BuiltinDoc]] = {
    SOURCE_TAG: TAGS,
    SOURCE_FUNCTION: FUNCTIONS,
}


def word_prefix(line: str, character: int) -> str:
    """Return the identifier characters immediately left of ``character``."""
    head = line[: max(0, min(character, len(line)))]
    match = _WORD_TAIL_RE.search(head)
    return match.group(0) if match else ""


def is_member_access(line: str, character: int, prefix: str) -> bool:
    head = line[: max(0, min(character, len(line)))]
    return head[: len(head) - len(prefix)].endswith(".")


def document_words(source: str, *, exclude: str = "") -> list[str]:
    seen: dict[str, None] = {}
    for match in _WORD_RE.finditer(source):
        word = match.group(0)
        if len(word) < 2 or word == exclude:
            continue
        seen.setdefault(word, None)
    return list(seen)


def _item(label: str, kind: CompletionItemKind, source: str) -> CompletionItem:
    return CompletionItem(
        label=label,
        kind=kind,
        data={"source": source, "label": label},
    )


def _candidates(
    *,
    prefix: str,
    member_access: bool,
    source_text: str | None,
    settings: CompletionSettings,
) -> Iterable[CompletionItem]:
    if settings.enable_keywords:
        if not member_access and prefix.lower().startswith("cf"):
            for name in TAGS:
                yield _item(name, CompletionItemKind.Keyword, SOURCE_TAG)
        for name in FUNCTIONS:
            yield _item(name, CompletionItemKind.Function, SOURCE_FUNCTION)
    if settings.enable_document_words and source_text is not None:
        for word in document_words(source_text, exclude=prefix):
            yield _item(word, CompletionItemKind.Text, SOURCE_DOCUMENT)


def complete(
    line: str,
    character: int,
    *,
    source_text: str | None,
    settings: CompletionSettings,
    trigger_character: str | None = None,
) -> CompletionList:
    prefix = word_prefix(line, character)
    member_access = trigger_character == "." or is_member_access(line, character, prefix)
    needle = prefix.lower()
    items: list[CompletionItem] = []
    labels: set[str] = set()
    incomplete = False
    for item in _candidates(
        prefix=prefix,
        member_access=member_access,
        source_text=source_text,
        settings=settings,
    ):
        if item.label in labels or not item.label.lower().startswith(needle):
            continue
        if len(items) >= settings.max_items:
            incomplete = True
            break
        labels.add(item.label)
        items.append(item)
    return CompletionList(is_incomplete=incomplete, items=items)


def resolve(item: CompletionItem) -> CompletionItem:
    data = item.data if isinstance(item.data, dict) else {}
    docs = _DOCS_BY_SOURCE.get(str(data.get("source", "")), {})
    doc = docs.get(str(data.get("label", item.label)))
    if doc is None:
        return item
    item.detail = doc.detail
    item.documentation = MarkupContent(kind=MarkupKind.Markdown, value=doc.documentation)
    return item
