# immutable_model init

from .struct import (
    FrozenList,
    FrozenMap,
    OrderedFrozenSet,
    coerce,
    freeze,
    getin,
    iskey,
    islist,
    ismap,
    isnode,
    ispath,
    isref,
    isset,
    parsepath,
    pathify,
    setin,
    toplain,
    updatein,
)

from .schema import (
    MAXDEPTH,
    classify,
    construct,
    getdefault,
    isiterableof,
    isschema,
    istypedef,
    listof,
    mergedeep,
    orderedsetof,
    serialize,
    setof,
)

from .model import (
    Model,
    ismodel,
)

from . import ref


__all__ = [
    'FrozenList',
    'FrozenMap',
    'MAXDEPTH',
    'Model',
    'OrderedFrozenSet',
    'classify',
    'coerce',
    'construct',
    'freeze',
    'getdefault',
    'getin',
    'isiterableof',
    'iskey',
    'islist',
    'ismap',
    'ismodel',
    'isnode',
    'ispath',
    'isref',
    'isschema',
    'isset',
    'istypedef',
    'listof',
    'mergedeep',
    'orderedsetof',
    'parsepath',
    'pathify',
    'ref',
    'serialize',
    'setin',
    'setof',
    'toplain',
    'updatein',
]
