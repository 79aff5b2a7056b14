# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Immutable Model Ref
# ===================
#
# References point at data elsewhere in a root instance, by key path.
# A reference is itself an instance of the `__reference` model, with a
# single `path` attribute. The schema walkers recognize references by
# shape: construct keeps them as they are, and serialize always uses
# the reference serializer.
#
# Utilities
# - create: a reference to a key path.
# - resolve: the value a reference points at in a root instance.
# - resolvecollection: resolve each reference of a list or set.
# - replacein: swap the reference(s) at a path in an instance for the
#   values they point at.


import logging
from typing import Any

from .model import Model, ismodel
from .struct import (
    UNDEF,
    S_REFERENCE,
    S_TYPENAME,
    getin,
    parsepath,
    pathify,
    ispath,
    updatein,
)


log = logging.getLogger(__name__)

S_path = 'path'

Ref = Model.create({
    'typename': S_REFERENCE,
    'defaults': {S_path: UNDEF},
})

instanceof = Ref.instanceof
collectionof = Ref.collectionof
serialize = Ref.serialize


def create(path: Any = UNDEF) -> Any:
    "Reference to a key path: a dot separated string, a key, or a sequence of keys."
    keypath = parsepath(path)
    if not ispath(keypath):
        raise ValueError('Path required to create a Ref')

    return Ref.construct({S_path: keypath})


def resolve(ref: Any, state: Any) -> Any:
    "The value in the root instance state that ref points at, or UNDEF."
    if not instanceof(ref):
        raise ValueError('Ref is required to resolve a ref')
    if not ismodel(state):
        raise ValueError('Root state is required to resolve a ref')

    path = ref.get(S_path)
    out = getin(state, path)
    if out is UNDEF:
        log.debug('ref %s resolved to nothing in %s', pathify(path), state.get(S_TYPENAME))

    return out


def resolvecollection(refs: Any, state: Any) -> Any:
    "Resolve each reference in refs, keeping the kind of container."
    if not collectionof(refs):
        raise ValueError('Collection of Ref instances is required to resolve a collection of refs')
    if not ismodel(state):
        raise ValueError('Root state is required to resolve a collection of refs')

    return type(refs)(resolve(ref, state) for ref in refs)


def replacein(state: Any, subject: Any, path: Any) -> Any:
    """
    Replace the reference, or collection of references, at path in
    subject with what it resolves to in state. Any other value at path
    is left alone.
    """
    if not ismodel(state):
        raise ValueError('Root state is required to replace references in subject')
    if not ismodel(subject):
        raise ValueError('Subject state is required to replace references in subject')

    keypath = parsepath(path)
    if not ispath(keypath):
        raise ValueError('Path required to replace references in a subject')

    if getin(subject, keypath) is UNDEF:
        return subject

    def replacer(maybe):
        if instanceof(maybe):
            return resolve(maybe, state)
        if collectionof(maybe):
            return resolvecollection(maybe, state)
        return maybe

    return updatein(subject, keypath, replacer)


__all__ = [
    'Ref',
    'collectionof',
    'create',
    'instanceof',
    'replacein',
    'resolve',
    'resolvecollection',
    'serialize',
]
