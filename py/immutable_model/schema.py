# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Immutable Model Schema
# ======================
#
# Schema driven conversion between plain data and immutable value
# trees. A schema is a mapping from keys to schema nodes, and each
# node is one of:
# - a type definition: an object or mapping providing some of the
#   operations `construct`, `serialize`, `mergedeep` and `instanceof`
#   (at least one of the first three),
# - an iterable of a node: made by `listof`, `setof` or
#   `orderedsetof`, or written as a one element list,
# - a nested schema: a mapping of keys to schema nodes,
# - anything else, which is plain data and passes through.
#
# Nodes are resolved once, by `classify`, into the classes TypeDef,
# IterableOf, Nested and Plain, and the walkers dispatch on those.
#
# Main utilities
# - construct: build a value tree from raw attributes.
# - serialize: turn a value tree back into plain data.
# - mergedeep: merge raw attributes into a value tree, field by field.
#
# Minor utilities
# - classify: resolve a schema node.
# - istypedef, isiterableof, isschema: identify schema node kinds.
# - listof, setof, orderedsetof: iterable of a node.
# - getdefault: the default value under a key.
#
# Options
# - defaults: the default value for the current branch. Set for each
#   node as the walk descends.
# - omitmeta: serialize drops instance metadata (default True).
# - maxdepth: deepest path the walk will visit (default MAXDEPTH).


import logging
from collections.abc import Mapping, Set
from typing import Any, Dict, List

from .struct import (
    UNDEF,
    FrozenList,
    FrozenMap,
    OrderedFrozenSet,
    coerce,
    freeze,
    ismap,
    islist,
    ismeta,
    isref,
    pathify,
    toplain,
)


log = logging.getLogger(__name__)

# Operations of a type definition.
S_construct = 'construct'
S_serialize = 'serialize'
S_mergedeep = 'mergedeep'
S_instanceof = 'instanceof'

# Container kinds of an iterable.
S_LIST = 'list'
S_SET = 'set'
S_ORDEREDSET = 'orderedset'

# Option names.
S_DEFAULTS = 'defaults'
S_OMITMETA = 'omitmeta'
S_MAXDEPTH = 'maxdepth'

# Deepest path visited by a walk, unless set in the options.
MAXDEPTH = 64


class SchemaNode:
    "A resolved schema node."
    __slots__ = ()


class Plain(SchemaNode):
    "Plain data, not transformed."
    __slots__ = ()

    def __repr__(self) -> str:
        return 'Plain()'


class TypeDef(SchemaNode):
    """
    A type definition with its operations looked up once. Operations
    the source does not provide are UNDEF.
    """
    __slots__ = ('source', 'construct', 'serialize', 'mergedeep', 'instanceof')

    def __init__(self, source: Any) -> None:
        self.source = source
        self.construct = _operation(source, S_construct)
        self.serialize = _operation(source, S_serialize)
        self.mergedeep = _operation(source, S_mergedeep)
        self.instanceof = _operation(source, S_instanceof)

    def __repr__(self) -> str:
        return 'TypeDef(' + repr(self.source) + ')'


class IterableOf(SchemaNode):
    "A homogeneous collection of the item node, held in a container of the given kind."
    __slots__ = ('kind', 'item')

    def __init__(self, kind: str, item: Any) -> None:
        self.kind = kind
        self.item = classify(item)

    def __repr__(self) -> str:
        return 'IterableOf(' + self.kind + ', ' + repr(self.item) + ')'


class Nested(SchemaNode):
    "A nested schema, mapping keys to resolved nodes."
    __slots__ = ('fields',)

    def __init__(self, fields: Dict[Any, SchemaNode] = UNDEF) -> None:
        self.fields = {} if fields is UNDEF else fields

    def __repr__(self) -> str:
        return 'Nested(' + repr(self.fields) + ')'


PLAIN = Plain()


def classify(node: Any = UNDEF) -> SchemaNode:
    """
    Resolve a schema node to its kind. Type definitions and iterables
    are recognized before nested schemas, as a type definition may
    itself be written as a mapping. Any other mapping is a nested
    schema, and its children are resolved one by one, so a malformed
    child is Plain without affecting its siblings.
    """
    if isinstance(node, SchemaNode):
        return node

    if _isoperational(node):
        return TypeDef(node)

    if isinstance(node, list) and 1 == len(node):
        item = classify(node[0])
        return PLAIN if isinstance(item, Plain) else IterableOf(S_LIST, item)

    if isinstance(node, Mapping):
        return Nested({key: classify(child) for key, child in node.items()})

    return PLAIN


def istypedef(node: Any = UNDEF) -> bool:
    "Node provides a construct or serialize operation."
    return UNDEF != _operation(node, S_construct) or UNDEF != _operation(node, S_serialize)


def isiterableof(node: Any = UNDEF) -> bool:
    "Node is an iterable of a node."
    return isinstance(classify(node), IterableOf)


def isschema(node: Any = UNDEF) -> bool:
    "Node is a mapping of keys to schema nodes, at every level."
    return _isstrict(classify(node))


def listof(item: Any) -> IterableOf:
    "Values are lists, each element handled by item."
    return IterableOf(S_LIST, item)


def setof(item: Any) -> IterableOf:
    "Values are sets, each element handled by item."
    return IterableOf(S_SET, item)


def orderedsetof(item: Any) -> IterableOf:
    "Values are sets that keep first-seen order, each element handled by item."
    return IterableOf(S_ORDEREDSET, item)


def getdefault(defaults: Any = UNDEF, key: Any = UNDEF) -> Any:
    """
    The part of a defaults tree under key, or UNDEF. For an iterable
    field this is the whole default collection; any per element
    defaults are left to the item's own construct.
    """
    defaults = coerce(defaults)
    if ismap(defaults):
        return defaults.get(key)
    if islist(defaults) and isinstance(key, int) and not isinstance(key, bool):
        return defaults[key] if -len(defaults) <= key < len(defaults) else UNDEF
    return UNDEF


def construct(schema: Any = UNDEF, raw: Any = UNDEF, options: Any = UNDEF) -> Any:
    """
    Build an immutable value tree from raw attributes.

    Every key of the schema that is present in raw is visited:
    - type definition: values already passing `instanceof` (and
      references) are kept, others are passed to `construct` if
      the type has one, and frozen if not.
    - iterable: each element is built by the item node, and the
      results are collected into the iterable's container.
    - nested schema: built recursively. Nested schemas are also
      built when absent from raw, from an empty map.

    Each node receives the part of `options['defaults']` under its
    key as its `defaults` option. Keys in raw that are not in the
    schema are frozen and copied through.
    """
    return _construct(_root(schema), raw, _options(options), [])


def serialize(schema: Any = UNDEF, instance: Any = UNDEF, options: Any = UNDEF) -> Any:
    """
    Turn an immutable value tree back into plain dicts and lists.

    Every key of the instance is visited:
    - type definition: values failing `instanceof` are copied
      unchanged, others are passed to `serialize` if the type has one,
      and converted to plain data if not.
      References always use the reference serializer.
    - iterable: a list, each element serialized by the item node.
    - nested schema: serialized recursively.

    Keys not in the schema are converted to plain data. Instance
    metadata is dropped unless `options['omitmeta']` is false.
    """
    options = _options(options)
    if S_OMITMETA not in options:
        options = options.set(S_OMITMETA, True)
    return _serialize(_root(schema), instance, options, [])


def mergedeep(
        schema: Any = UNDEF,
        existing: Any = UNDEF,
        incoming: Any = UNDEF,
        options: Any = UNDEF
) -> Any:
    """
    Merge incoming raw attributes into an existing value tree, letting
    each schema node decide how its own field merges.

    Only keys present in incoming are visited:
    - type definition: if existing fails `instanceof`, incoming wins.
      Otherwise `mergedeep(existing, incoming, options)` if the type
      has one, else incoming wins. A winning incoming value is frozen.
    - iterable: merging collections is ambiguous, so incoming is built
      fresh (as by construct) and replaces existing.
    - nested schema: merged recursively.

    Keys only in existing are kept. Incoming keys not in the schema
    replace existing values.
    """
    return _mergedeep(
        _root(schema),
        existing,
        FrozenMap() if incoming is UNDEF else incoming,
        _options(options),
        []
    )


# Internal utilities
# ==================

def _operation(node: Any, name: str) -> Any:
    if isinstance(node, Mapping):
        op = node.get(name)
    else:
        op = getattr(node, name, UNDEF)
    return op if callable(op) else UNDEF


def _isoperational(node: Any) -> bool:
    return (
        UNDEF != _operation(node, S_construct) or
        UNDEF != _operation(node, S_serialize) or
        UNDEF != _operation(node, S_mergedeep)
    )


def _isstrict(node: SchemaNode) -> bool:
    if not isinstance(node, Nested):
        return False
    for child in node.fields.values():
        if isinstance(child, TypeDef):
            if not istypedef(child.source):
                return False
        elif isinstance(child, Nested):
            if not _isstrict(child):
                return False
        elif not isinstance(child, IterableOf):
            return False
    return True


def _root(schema: Any) -> SchemaNode:
    return Nested() if schema is UNDEF else classify(schema)


def _options(options: Any) -> FrozenMap:
    options = coerce(options)
    if not ismap(options):
        options = FrozenMap()
    return options.set(S_DEFAULTS, freeze(options.get(S_DEFAULTS)))


def _descend(options: FrozenMap, key: Any) -> FrozenMap:
    return options.set(S_DEFAULTS, getdefault(options.get(S_DEFAULTS), key))


def _guard(path: List[Any], options: FrozenMap) -> None:
    maxdepth = options.get(S_MAXDEPTH, MAXDEPTH)
    if maxdepth < len(path):
        log.debug('schema walk stopped at depth %d: %s', len(path), pathify(path))
        raise ValueError(
            'Schema nesting exceeds maximum depth of ' + str(maxdepth) +
            ' at: ' + pathify(path)
        )


def _elements(current: Any) -> Any:
    if current is UNDEF:
        return ()
    if isinstance(current, (FrozenList, list, tuple, Set)):
        return current
    return (current,)


def _cast(kind: str, items: List[Any]) -> Any:
    if S_SET == kind:
        return frozenset(items)
    if S_ORDEREDSET == kind:
        return OrderedFrozenSet(items)
    return FrozenList(items)


def _construct(node: SchemaNode, current: Any, options: FrozenMap, path: List[Any]) -> Any:
    _guard(path, options)

    if isref(current):
        return current

    if isinstance(node, TypeDef):
        if UNDEF != node.instanceof and node.instanceof(current):
            return current
        if UNDEF != node.construct:
            return node.construct(current, options)
        return freeze(current)

    if isinstance(node, IterableOf):
        return _cast(node.kind, [
            _construct(node.item, item, options, path + [index])
            for index, item in enumerate(_elements(current))
        ])

    if isinstance(node, Nested):
        return _construct_nested(node, current, options, path)

    return freeze(current)


def _construct_nested(node: Nested, current: Any, options: FrozenMap, path: List[Any]) -> Any:
    attrs = FrozenMap() if current is UNDEF else coerce(current)

    # Not object-like, so there is nothing to apply the schema to.
    if not ismap(attrs):
        return attrs

    out = {
        key: val if key in node.fields else freeze(val)
        for key, val in attrs.items()
    }

    for key, child in node.fields.items():
        # Absent fields are only built for nested schemas, from an empty map.
        if key in attrs or isinstance(child, Nested):
            out[key] = _construct(child, attrs.get(key), _descend(options, key), path + [key])

    if len(out) == len(attrs) and all(out[key] is attrs[key] for key in attrs):
        return attrs

    return FrozenMap._wrap(out)


def _serialize(node: SchemaNode, current: Any, options: FrozenMap, path: List[Any]) -> Any:
    _guard(path, options)

    if isref(current):
        return toplain(current, options.get(S_OMITMETA))

    if isinstance(node, TypeDef):
        if UNDEF != node.instanceof and not node.instanceof(current):
            return current
        if UNDEF != node.serialize:
            return node.serialize(current, options)
        return toplain(current, options.get(S_OMITMETA))

    if isinstance(node, IterableOf):
        if current is UNDEF:
            return current
        return [
            _serialize(node.item, item, options, path + [index])
            for index, item in enumerate(_elements(current))
        ]

    if isinstance(node, Nested):
        return _serialize_nested(node, current, options, path)

    return toplain(current, options.get(S_OMITMETA))


def _serialize_nested(node: Nested, current: Any, options: FrozenMap, path: List[Any]) -> Any:
    omitmeta = options.get(S_OMITMETA)

    if not isinstance(current, Mapping):
        return toplain(current, omitmeta)

    out = {}
    for key, val in current.items():
        if omitmeta and ismeta(key):
            continue
        child = node.fields.get(key)
        if UNDEF == child:
            out[key] = toplain(val, omitmeta)
        else:
            out[key] = _serialize(child, val, options, path + [key])

    return out


def _mergedeep(
        node: SchemaNode,
        existing: Any,
        incoming: Any,
        options: FrozenMap,
        path: List[Any]
) -> Any:
    _guard(path, options)

    if isinstance(node, TypeDef):
        if UNDEF != node.instanceof and not node.instanceof(existing):
            return freeze(incoming)
        if UNDEF != node.mergedeep:
            return node.mergedeep(existing, incoming, options)
        return freeze(incoming)

    if isinstance(node, IterableOf):
        return _construct(node, incoming, options, path)

    if isinstance(node, Nested):
        return _mergedeep_nested(node, existing, incoming, options, path)

    return freeze(incoming)


def _mergedeep_nested(
        node: Nested,
        existing: Any,
        incoming: Any,
        options: FrozenMap,
        path: List[Any]
) -> Any:
    incoming = coerce(incoming)

    # Incoming is not object-like, so it replaces the existing value.
    if not ismap(incoming):
        return incoming

    base = coerce(existing)
    if not ismap(base):
        base = FrozenMap()

    if 0 == len(incoming):
        return base

    out = dict(base.items())
    for key, val in incoming.items():
        child = node.fields.get(key)
        if UNDEF == child:
            out[key] = freeze(val)
        else:
            out[key] = _mergedeep(child, base.get(key), val, _descend(options, key), path + [key])

    return FrozenMap._wrap(out)


__all__ = [
    'MAXDEPTH',
    'IterableOf',
    'Nested',
    'Plain',
    'SchemaNode',
    'TypeDef',
    'S_DEFAULTS',
    'S_LIST',
    'S_MAXDEPTH',
    'S_OMITMETA',
    'S_ORDEREDSET',
    'S_SET',
    'classify',
    'construct',
    'getdefault',
    'isiterableof',
    'isschema',
    'istypedef',
    'listof',
    'mergedeep',
    'orderedsetof',
    'serialize',
    'setof',
]
