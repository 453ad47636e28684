from typing import Dict, List, Optional

from deschrambler.exceptions import ConsistencyError, ParseError, TreeCapacityError
from deschrambler.tree import LEFT, RIGHT, PhyloTree

MAX_TREE_DEPTH = 50000
ANCESTOR_MARKER = "@"
SEPARATORS = {",", "(", ")", ";", ":"}


class _ParserState:
    """Mutable state shared by the buffer and stack helpers of one parse."""

    __slots__ = (
        "tree",
        "stack",
        "current",
        "buffer",
        "mode",
        "lengths",
        "marked",
        "closing_order",
        "source",
    )

    def __init__(self, source: Optional[str]):
        self.tree = PhyloTree()
        self.stack: List[int] = []
        self.current: Optional[int] = None
        self.buffer: List[str] = []
        self.mode = "character_reader"
        self.lengths: Dict[int, float] = {}
        self.marked: List[int] = []
        self.closing_order: List[int] = []
        self.source = source

    def error(self, message: str, position: int) -> ParseError:
        return ParseError(f"{message} at position {position}", source=self.source)


# ===================================================================
# 1. BUFFER PROCESSING FUNCTIONS
# ===================================================================


def flush_character_buffer(state: _ParserState, position: int) -> None:
    """
    Assign the accumulated name.

    A name directly after ``)`` labels the internal node that was just closed;
    any other name opens a new leaf.
    """
    if not state.buffer:
        return
    name = "".join(state.buffer)
    state.buffer.clear()

    if state.current is None:
        state.current = state.tree.add_node(name=name)
        return

    node = state.tree[state.current]
    if node.is_leaf() or node.name:
        raise state.error(f"unexpected name '{name}'", position)
    node.name = name


def flush_length_buffer(state: _ParserState, position: int) -> None:
    """Parse the accumulated branch length for the current node."""
    value = "".join(state.buffer)
    state.buffer.clear()
    try:
        length = float(value)
    except ValueError:
        raise state.error(f"cannot parse branch length '{value}'", position)
    if length < 0 or length != length:
        raise state.error(f"invalid branch length '{value}'", position)
    state.lengths[state.current] = length


def flush_buffer(state: _ParserState, position: int) -> None:
    if state.mode == "character_reader":
        flush_character_buffer(state, position)
    elif state.mode == "length_reader":
        flush_length_buffer(state, position)
    state.mode = "character_reader"


# ===================================================================
# 2. NODE STACK MANAGEMENT FUNCTIONS
# ===================================================================


def open_node(state: _ParserState, position: int) -> None:
    if state.current is not None or state.buffer:
        raise state.error("unexpected '('", position)
    if len(state.stack) + 1 > MAX_TREE_DEPTH:
        raise TreeCapacityError(
            f"tree nesting exceeds {MAX_TREE_DEPTH} levels at position {position}",
            source=state.source,
        )
    state.stack.append(state.tree.add_node())


def attach_sibling(state: _ParserState, position: int) -> None:
    """Handle ``,``: the pending node becomes the left child of the open node."""
    if not state.stack:
        raise state.error("',' outside of parentheses", position)
    if state.current is None:
        raise state.error("missing subtree before ','", position)
    parent = state.stack[-1]
    if state.tree[parent].left is not None:
        raise state.error("node has more than two children", position)
    state.tree.attach(parent, state.current, LEFT)
    state.current = None


def close_node(state: _ParserState, position: int) -> None:
    """Handle ``)``: the pending node becomes the right child and the open node completes."""
    if not state.stack:
        raise state.error("unbalanced ')'", position)
    if state.current is None:
        raise state.error("missing subtree before ')'", position)
    parent = state.stack.pop()
    state.tree.attach(parent, state.current, RIGHT)
    state.closing_order.append(parent)
    state.current = parent


# ===================================================================
# 3. CORE PARSING FUNCTIONS
# ===================================================================


def _parse_newick(tokens: str, source: Optional[str]) -> _ParserState:
    state = _ParserState(source)
    just_closed = False

    for position, char in enumerate(tokens):
        if char.isspace():
            continue

        if char == "(":
            open_node(state, position)
        elif char == ",":
            flush_buffer(state, position)
            attach_sibling(state, position)
        elif char == ")":
            flush_buffer(state, position)
            close_node(state, position)
        elif char == ANCESTOR_MARKER:
            if not just_closed:
                raise state.error(
                    f"'{ANCESTOR_MARKER}' must follow a closing parenthesis", position
                )
            state.marked.append(state.current)
        elif char == ":":
            flush_buffer(state, position)
            if state.current is None:
                raise state.error("branch length without a node", position)
            state.mode = "length_reader"
        elif char == ";":
            flush_buffer(state, position)
            break
        else:
            state.buffer.append(char)

        just_closed = char == ")"
    else:
        flush_buffer(state, len(tokens))

    if state.stack:
        raise ParseError(
            f"unbalanced tree, {len(state.stack)} unclosed '('", source=source
        )
    if state.current is None:
        raise ParseError("empty tree description", source=source)
    return state


def _finalize(state: _ParserState, alpha: float, default_length: float) -> PhyloTree:
    tree = state.tree
    tree.root = state.current

    for count, index in enumerate(state.closing_order, start=1):
        if not tree[index].name:
            tree[index].name = f"IN{count}"

    for node in tree.nodes:
        node.distance = state.lengths.get(node.index, default_length) * alpha

    if len(state.marked) > 1:
        names = [tree[i].name for i in state.marked]
        raise ConsistencyError(
            f"More than one designated ancestor marked with '{ANCESTOR_MARKER}': {names}"
        )
    tree.ancestor = state.marked[0] if state.marked else tree.root

    seen: Dict[str, int] = {}
    for index in tree.leaves():
        name = tree[index].name
        if name in seen:
            raise ConsistencyError(f"Leaf name '{name}' occurs more than once in the tree")
        seen[name] = index

    tree.validate()
    tree.classify_outgroups()
    return tree


# ===================================================================
# 4. PUBLIC API FUNCTIONS
# ===================================================================


def parse_newick(
    tokens: str,
    alpha: float = 1.0,
    default_length: float = 0.0,
    source: Optional[str] = None,
) -> PhyloTree:
    """
    Parse a marked, binary Newick string into a :class:`PhyloTree`.

    The internal node followed by ``@`` (e.g. ``((A:1,B:1)@:1,C:2);``) is the
    designated ancestor; without a marker the root is used. Branch lengths are
    multiplied by ``alpha``. Leaves are flagged as outgroup when they do not
    descend from the designated ancestor.

    Args:
        tokens: Tree description, parsing stops at the first ``;``
        alpha: Rate parameter applied to every branch length
        default_length: Branch length for nodes written without ``:length``
        source: File name used in error messages

    Returns:
        The parsed tree, rooted as written.

    Raises:
        ParseError: Malformed or non-binary description
        TreeCapacityError: Nesting deeper than ``MAX_TREE_DEPTH``
        ConsistencyError: Duplicate markers or leaf names
    """
    state = _parse_newick(tokens, source)
    return _finalize(state, alpha, default_length)
