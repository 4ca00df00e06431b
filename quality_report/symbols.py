"""Symbol name normalization.

Coverage, metrics and diagnostics producers spell the same member in
different ways (return type prefixes, ``::`` separators, full parameter
lists, generic arity). Everything that must be matched across sources goes
through the helpers below so that both sides reduce to one key.

Functions:
    normalize_method_signature(signature)             -> str | None
    extract_method_name(signature)                    -> str
    normalize_fully_qualified_method_name(fqn)        -> str | None
    normalize_type_name(name)                         -> str | None
    member_key(signature, type_fqn)                   -> str
    declaring_type_name(member_fqn)                   -> str | None
    member_display_name(member_fqn)                   -> str

Example:
    >>> member_key("void OnApplicationIdling(object? sender, IdlingEventArgs e)",
    ...            "Rca.Loader.LoaderApp")
    'Rca.Loader.LoaderApp.OnApplicationIdling(...)'
"""

PARAMETER_PLACEHOLDER = "..."
GLOBAL_NAMESPACE = "<global>"


# ---------------------------------------------------------------------------
# Bracket helpers
# ---------------------------------------------------------------------------

def _find_matching(text: str, open_index: int, opening: str, closing: str) -> int:
    """Return the index of the bracket closing the one at *open_index*, or -1."""
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == opening:
            depth += 1
        elif char == closing:
            depth -= 1
            if depth == 0:
                return index
    return -1


def _find_top_level_space(text: str, end: int) -> int:
    """Return the first space before *end* outside any ``<...>``, or -1."""
    depth = 0
    for index in range(end):
        char = text[index]
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        elif char == " " and depth <= 0:
            return index
    return -1


def _is_generic_argument_list(text: str, close_index: int, end: int) -> bool:
    """True when the ``>`` at *close_index* ends a method's own generic list."""
    following = close_index + 1
    return following >= end or text[following] in " ()"


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def normalize_method_signature(signature: str | None) -> str | None:
    """Collapse the parameter list to ``(...)``.

    Null, blank, parenthesis-free or unbalanced input is returned unchanged.
    Any prefix before the parameter list (return type included) is kept.
    """
    if signature is None or not signature.strip():
        return signature

    open_index = signature.find("(")
    if open_index < 0:
        return signature
    close_index = _find_matching(signature, open_index, "(", ")")
    if close_index < 0:
        return signature

    return signature[: open_index + 1] + PARAMETER_PLACEHOLDER + signature[close_index:]


def extract_method_name(signature: str | None) -> str:
    """Return the bare method name of *signature*.

    ``"void Ns.Type.Run<T>(T item)"`` gives ``"Run"`` and
    ``"System.Void Ns.Type..ctor()"`` gives ``".ctor"``.
    """
    if signature is None or not signature.strip():
        return ""

    paren = signature.find("(")
    head_end = paren if paren >= 0 else len(signature)
    space = _find_top_level_space(signature, head_end)
    start = space + 1 if space >= 0 else 0

    end = len(signature)
    if paren >= start:
        end = paren
    where = signature.find(" where ", start)
    if 0 <= where < end:
        end = where

    segment = signature[start:end].strip()
    generic_start = signature.find("<", start, end)
    if generic_start >= 0:
        generic_end = _find_matching(signature, generic_start, "<", ">")
        if 0 <= generic_end < end and _is_generic_argument_list(signature, generic_end, end):
            segment = signature[start:generic_start].strip()

    last_dot = segment.rfind(".")
    name = segment[last_dot + 1:].strip() if last_dot >= 0 else segment

    if name in ("ctor", "cctor") and last_dot > 0 and segment[:last_dot].endswith("."):
        return "." + name
    return name


def _is_identifier_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def normalize_type_name(name: str | None) -> str | None:
    """Strip generic argument lists from a type name.

    ``Ns.Repo<T>`` and ``Ns.Repo<TEntity>+Inner`` become ``Ns.Repo`` and
    ``Ns.Repo+Inner``. A ``<`` that does not follow an identifier starts a
    compiler-generated name (``Outer+<Run>d__1``) and is kept, as are
    placeholders such as ``<global>``.
    """
    if name is None or not name.strip():
        return name
    if name.startswith("<") and name.endswith(">"):
        return name

    parts = []
    index = 0
    while True:
        start = name.find("<", index)
        if start < 0:
            break
        end = _find_matching(name, start, "<", ">")
        if start > 0 and _is_identifier_char(name[start - 1]):
            parts.append(name[index:start])
            if end < 0:
                index = len(name)
                break
        else:
            if end < 0:
                break
            parts.append(name[index:end + 1])
        index = end + 1
    parts.append(name[index:])
    return "".join(parts).strip()


def normalize_fully_qualified_method_name(fqn: str | None) -> str | None:
    """Erase generic arguments of the declaring type and of the method, then
    collapse the parameter list.

    Compiler-generated names whose brackets are not an argument list
    (``<Clone>$``) are kept as they are.
    """
    if fqn is None or not fqn.strip():
        return fqn

    paren = fqn.find("(")
    search_end = paren if paren >= 0 else len(fqn)
    last_dot = fqn.rfind(".", 0, search_end)

    if last_dot >= 0:
        type_part = fqn[:last_dot]
        normalized_type = normalize_type_name(type_part)
        if normalized_type != type_part:
            fqn = normalized_type + fqn[last_dot:]
            paren = fqn.find("(")
            search_end = paren if paren >= 0 else len(fqn)

    generic_start = fqn.find("<", 0, search_end)
    if generic_start >= 0:
        generic_end = _find_matching(fqn, generic_start, "<", ">")
        if 0 <= generic_end < search_end and _is_generic_argument_list(fqn, generic_end, search_end):
            fqn = fqn[:generic_start] + fqn[generic_end + 1:]

    return normalize_method_signature(fqn)


def member_key(signature: str | None, type_fqn: str | None) -> str:
    """Return the merge key of a member declared on *type_fqn*.

    Accepts coverage style (``System.Void Ns.Type::Run(System.Int32)``),
    metrics style (``void Run(int value)``) and already qualified names.
    Overloads collapse to the same key.
    """
    if signature is None or not signature.strip():
        return ""

    text = signature.strip()
    paren = text.find("(")
    head_end = paren if paren >= 0 else len(text)
    space = _find_top_level_space(text, head_end)
    if space >= 0:
        text = text[space + 1:].strip()

    text = text.replace("::", ".").replace("/", "+")
    type_fqn = normalize_type_name(type_fqn)

    if "(" not in text:
        last_dot = text.rfind(".")
        if last_dot > 0:
            text = normalize_type_name(text[:last_dot]) + text[last_dot:]
        if type_fqn and not text.startswith(type_fqn + "."):
            return f"{type_fqn}.{text}"
        return text

    normalized = normalize_fully_qualified_method_name(text) or ""
    if not type_fqn:
        return normalized

    prefix = normalized[: normalized.find("(")]
    if prefix.startswith(type_fqn + "."):
        return normalized

    name = prefix
    generic_start = name.find("<")
    if generic_start > 0:
        name = name[:generic_start]
    name = name[name.rfind(".") + 1:]
    if prefix.endswith(".ctor") or prefix.endswith(".cctor"):
        name = "." + name.lstrip(".")
    return f"{type_fqn}.{name}({PARAMETER_PLACEHOLDER})"


def declaring_type_name(member_fqn: str | None) -> str | None:
    """Return the type part of a member FQN (text before the last dot that
    precedes the parameter list)."""
    if not member_fqn:
        return None
    paren = member_fqn.find("(")
    search_end = paren if paren >= 0 else len(member_fqn)
    last_dot = member_fqn.rfind(".", 0, search_end)
    if last_dot <= 0:
        return None
    type_name = member_fqn[:last_dot]
    # "Ns.Type..ctor" leaves a trailing dot on the type part
    return type_name.rstrip(".") or None


def member_display_name(member_fqn: str) -> str:
    """Return ``Method(...)`` for ``Ns.Type.Method(...)``."""
    paren = member_fqn.find("(")
    search_end = paren if paren >= 0 else len(member_fqn)
    last_dot = member_fqn.rfind(".", 0, search_end)
    if last_dot < 0:
        return member_fqn
    if last_dot > 0 and member_fqn[last_dot - 1] == ".":
        last_dot -= 1
    return member_fqn[last_dot + 1:]
