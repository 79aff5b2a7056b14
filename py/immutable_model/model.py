# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Immutable Model Model
# =====================
#
# Named types of immutable instances. A model bundles a type name,
# default attributes and a schema, and provides the operations of a
# type definition (construct, serialize, mergedeep, instanceof), so a
# model can be used directly as a node in another model's schema.
#
# Instances are FrozenMaps tagged with two metadata keys:
# - `__typename`: the name of the model.
# - `__cid`: a client side identifier, unique within the process.


import itertools
import logging
from collections.abc import Mapping
from typing import Any

from . import schema as _schema
from .struct import (
    UNDEF,
    S_CID,
    S_TYPENAME,
    FrozenMap,
    coerce,
    freeze,
    ismap,
    islist,
    isset,
    iskey,
)


log = logging.getLogger(__name__)

S_typename = 'typename'
S_defaults = 'defaults'
S_schema = 'schema'
S_CIDPREFIX = 'cid-'

_cids = itertools.count(1)


def ismodel(val: Any = UNDEF) -> bool:
    "Value is an instance of some model."
    return ismap(val) and iskey(val.get(S_TYPENAME))


class Model:
    """
    A named type of immutable instance.

    The definition is either the type name, or a mapping with the keys
    `typename`, `defaults` (optional) and `schema` (optional).
    """

    def __init__(self, definition: Any = UNDEF) -> None:
        if isinstance(definition, str):
            definition = {S_typename: definition}

        typename = definition.get(S_typename) if isinstance(definition, Mapping) else UNDEF
        if not isinstance(typename, str) or not iskey(typename):
            raise ValueError('Type name required to create a Model')

        self._typename = typename
        self._defaults = _stripmeta(freeze(definition.get(S_defaults)))
        if not ismap(self._defaults):
            self._defaults = FrozenMap()
        self._schema = definition.get(S_schema)
        self._node = _schema.classify({} if self._schema is UNDEF else self._schema)

        log.debug('created model %s', typename)

    @classmethod
    def create(cls, definition: Any = UNDEF) -> 'Model':
        return cls(definition)

    def __repr__(self) -> str:
        return 'Model(' + repr(self._typename) + ')'

    def typename(self) -> str:
        return self._typename

    def defaults(self) -> FrozenMap:
        return self._defaults

    def schema(self) -> Any:
        "The schema as given to create."
        return self._schema

    def instanceof(self, val: Any = UNDEF) -> bool:
        "Value is an instance of this model."
        return ismap(val) and self._typename == val.get(S_TYPENAME)

    def collectionof(self, val: Any = UNDEF) -> bool:
        "Value is a list or set of instances of this model."
        return (islist(val) or isset(val)) and all(self.instanceof(item) for item in val)

    def construct(self, attrs: Any = UNDEF, options: Any = UNDEF) -> FrozenMap:
        """
        Create an instance from raw attributes. The model defaults (or
        `options['defaults']`, if given) are laid under the attributes,
        and the schema is applied with them as the ambient defaults. An
        existing client identifier in attrs is kept.
        """
        options = coerce(options)
        if not ismap(options):
            options = FrozenMap()

        # Nested in a schema, the defaults option is set for every field.
        defaults = options.get(_schema.S_DEFAULTS)
        if defaults is UNDEF:
            defaults = self._defaults
        attrs = coerce(attrs)
        if not ismap(attrs):
            attrs = FrozenMap()

        base = coerce(defaults)
        if not ismap(base):
            base = FrozenMap()

        out = _schema.construct(
            self._node,
            base.update(_stripmeta(attrs)),
            options.set(_schema.S_DEFAULTS, defaults)
        )

        return self._tag(out, attrs.get(S_CID))

    factory = construct

    def serialize(self, instance: Any = UNDEF, options: Any = UNDEF) -> Any:
        "Plain data version of an instance. Metadata is omitted unless `omitmeta` is false."
        return _schema.serialize(self._node, instance, options)

    def merge(self, instance: Any = UNDEF, source: Any = UNDEF) -> FrozenMap:
        """
        Shallow merge: the attributes of source replace those of the
        instance. Source may be raw data, or an instance of any model;
        the result keeps the type and identity of the instance.
        """
        base = instance if self.instanceof(instance) else self.construct(instance)
        source = _stripmeta(freeze(source))
        if not ismap(source):
            return base
        return base.update(source)

    def mergedeep(self, instance: Any = UNDEF, source: Any = UNDEF, options: Any = UNDEF) -> FrozenMap:
        "Deep merge, with each schema field merging in its own way."
        base = instance if self.instanceof(instance) else self.construct(instance)
        merged = _schema.mergedeep(self._node, base, _stripmeta(coerce(source)), options)
        if merged is base:
            return base
        return self._tag(merged, base.get(S_CID))

    def _tag(self, out: Any, cid: Any) -> Any:
        if not ismap(out):
            return out
        meta = FrozenMap({
            S_CID: cid if iskey(cid) else S_CIDPREFIX + str(next(_cids)),
            S_TYPENAME: self._typename,
        })
        return meta.update(out)


def _stripmeta(val: Any) -> Any:
    if ismap(val):
        return val.remove(S_CID).remove(S_TYPENAME)
    return val


__all__ = [
    'Model',
    'ismodel',
]
