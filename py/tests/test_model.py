# RUN: python -m unittest discover -s tests
# RUN-SOME: python -m unittest discover -s tests -k model

import functools
import unittest

from immutable_model import (
    FrozenList,
    FrozenMap,
    Model,
    OrderedFrozenSet,
    islist,
    ismap,
    ismodel,
    listof,
    orderedsetof,
    ref as Ref,
    setof,
)


def identity(val, _options=None):
    return val


class TestModel(unittest.TestCase):

    # create tests
    # ============

    def test_create(self):
        model = Model.create({'typename': 'test-model'})

        self.assertIsInstance(model, Model)
        for name in ('construct', 'factory', 'defaults', 'serialize', 'merge',
                     'mergedeep', 'instanceof', 'collectionof', 'schema', 'typename'):
            self.assertTrue(callable(getattr(model, name)), name)

        self.assertIsInstance(Model('test-model'), Model)
        self.assertEqual(repr(model), "Model('test-model')")


    def test_create_errors(self):
        for definition in (None, {}, {'typename': ''}, {'typename': 1}, {'defaults': {}}, 12):
            with self.assertRaises(ValueError):
                Model.create(definition)


    def test_typename(self):
        self.assertEqual(Model.create('woo').typename(), 'woo')
        self.assertEqual(Model.create({'typename': 'woo'}).typename(), 'woo')


    def test_defaults(self):
        model = Model.create({'typename': 'test', 'defaults': {'a': 1, 'nested': {'b': 2}}})

        self.assertTrue(ismap(model.defaults()))
        self.assertTrue(ismap(model.defaults()['nested']))
        self.assertEqual(model.defaults(), {'a': 1, 'nested': {'b': 2}})

        self.assertEqual(Model.create('test').defaults(), {})


    def test_schema(self):
        schema = {'a': {'construct': identity}}
        model = Model.create({'typename': 'test', 'schema': schema})

        self.assertEqual(model.schema(), schema)
        self.assertIsNone(Model.create('test').schema())


    # instance tests
    # ==============

    def test_instanceof(self):
        model = Model.create('test')
        other = Model.create('other')
        instance = model.construct({})

        self.assertTrue(model.instanceof(instance))
        self.assertFalse(other.instanceof(instance))
        self.assertFalse(model.instanceof({'__typename': 'test'}))
        self.assertFalse(model.instanceof(None))

        self.assertTrue(ismodel(instance))
        self.assertFalse(ismodel(FrozenMap({'a': 1})))

        self.assertTrue(model.collectionof(FrozenList([instance, model.construct({})])))
        self.assertTrue(model.collectionof(frozenset([instance])))
        self.assertTrue(model.collectionof(FrozenList()))
        self.assertFalse(model.collectionof(FrozenList([instance, other.construct({})])))
        self.assertFalse(model.collectionof([instance]))
        self.assertFalse(model.collectionof(instance))


    def test_construct_identity(self):
        model = Model.create('test')

        first = model.construct({'a': 1})
        second = model.construct({'a': 1})

        self.assertEqual(list(first.keys())[:2], ['__cid', '__typename'])
        self.assertEqual(first['__typename'], 'test')
        self.assertTrue(first['__cid'].startswith('cid-'))
        self.assertNotEqual(first['__cid'], second['__cid'])

        again = model.construct(first)
        self.assertEqual(again['__cid'], first['__cid'])
        self.assertEqual(again, first)

        self.assertEqual(model.construct(None)['__typename'], 'test')


    def test_construct_defaults(self):
        model = Model.create({'typename': 'test', 'defaults': {'a': 1, 'b': 2}})

        instance = model.construct({'b': 3, 'c': 4})
        self.assertEqual(instance['a'], 1)
        self.assertEqual(instance['b'], 3)
        self.assertEqual(instance['c'], 4)

        instance = model.construct({}, {'defaults': {'z': 0}})
        self.assertEqual(instance['z'], 0)
        self.assertNotIn('a', instance)


    def test_construct(self):
        other = Model.create({'typename': 'woo', 'defaults': {'w': 'w-default'}})
        seen = {}

        def construct_a(val, options):
            seen['a'] = (val, ismap(options), options['defaults'])
            return 'A'

        def construct_b(val, options):
            seen['b'] = options['defaults']
            return 'B'

        def construct_iterable(val, options):
            seen['iterable'] = options['defaults']
            return FrozenList(val)

        schema = {
            'a': {'construct': construct_a},
            'nested': {'b': {'construct': construct_b}},
            'nestedArray': [{'construct': lambda val, options: 'C'}],
            'nestedModel': other,
            'alreadyInstance': {
                'construct': lambda val, options: 'not-seen',
                'instanceof': lambda val: True,
            },
            'iterableSchema': {'construct': construct_iterable},
            'nestedList': listof({'construct': identity}),
            'nestedSet': setof({'construct': identity}),
            'nestedOrderedSet': orderedsetof({'construct': identity}),
        }

        model = Model.create({'typename': 'testModel', 'schema': schema})

        defaults = {
            'a': 'a-default',
            'nested': {'b': 'b-default'},
            'nestedList': ['a-default'],
            'iterableSchema': ['a-default'],
        }
        attrs = {
            'nonDefined': 'prop',
            'a': 'a',
            'nested': {'b': 'a nested value'},
            'nestedModel': {'a': 'aaa', 'b': 'bbb'},
            'alreadyInstance': 'already-what-it-should-be',
            'nestedArray': ['values', 'array'],
            'nestedList': ['A', 'B'],
            'nestedSet': ['A', 'B'],
            'nestedOrderedSet': ['C', 'B', 'A'],
        }

        instance = model.factory(attrs, {'defaults': defaults})

        self.assertTrue(model.instanceof(instance))
        self.assertEqual(instance['a'], 'A')
        self.assertEqual(seen['a'], ('a', True, 'a-default'))
        self.assertEqual(seen['b'], 'b-default')
        self.assertEqual(seen['iterable'], ['a-default'])
        self.assertEqual(instance['nonDefined'], 'prop')
        self.assertEqual(instance.getin('nested.b'), 'B')
        self.assertEqual(instance['nestedArray'], ['C', 'C'])
        self.assertTrue(islist(instance['nestedArray']))

        self.assertTrue(other.instanceof(instance['nestedModel']))
        self.assertEqual(instance['nestedModel']['a'], 'aaa')
        self.assertEqual(instance['nestedModel']['w'], 'w-default')

        self.assertEqual(instance['alreadyInstance'], 'already-what-it-should-be')
        self.assertEqual(instance['nestedList'], ['A', 'B'])
        self.assertEqual(instance['nestedSet'], frozenset(['A', 'B']))
        self.assertIsInstance(instance['nestedOrderedSet'], OrderedFrozenSet)
        self.assertEqual(list(instance['nestedOrderedSet']), ['C', 'B', 'A'])


    def test_construct_refs(self):
        model = Model.create({'typename': 'test', 'schema': {'a': {'construct': lambda val, options: 'A'}}})
        ref = Ref.create(['some', 'non-existing', 'path'])

        instance = model.construct({'a': ref})
        self.assertIs(instance['a'], ref)


    def test_construct_skips_absent_fields(self):
        inner = Model.create({'typename': 'inner', 'defaults': {'i': 1}})

        def never(val, options):
            self.fail('absent fields are not constructed')

        outer = Model.create({'typename': 'outer', 'schema': {
            'inner': inner,
            'a': {'construct': never},
            'items': listof(inner),
        }})

        instance = outer.construct({'x': 1})
        self.assertEqual(sorted(instance.keys()), ['__cid', '__typename', 'x'])
        self.assertFalse(ismodel(instance.get('inner')))

        instance = outer.construct({'inner': {}})
        self.assertTrue(inner.instanceof(instance['inner']))
        self.assertEqual(instance['inner']['i'], 1)


    def test_construct_model_defaults_sliced(self):
        seen = []

        def construct_b(val, options):
            seen.append((val, options['defaults']))
            return val

        model = Model.create({
            'typename': 'test',
            'defaults': {'a': {'b': 'D'}},
            'schema': {'a': {'b': {'construct': construct_b}}},
        })

        instance = model.construct({})
        self.assertEqual(instance.getin('a.b'), 'D')
        self.assertEqual(seen, [('D', 'D')])


    def test_construct_without_context(self):
        model = Model.create({'typename': 'test', 'schema': {'a': {'construct': identity}}})
        factory = functools.partial(Model.factory, model)

        built = factory({'a': 1})
        direct = model.construct({'a': 1})

        self.assertTrue(model.instanceof(built))
        self.assertEqual(built.remove('__cid'), direct.remove('__cid'))
        self.assertNotEqual(built['__cid'], direct['__cid'])
        self.assertEqual(factory()['__typename'], 'test')


    # serialize tests
    # ===============

    def test_serialize(self):
        other = Model.create('woo')
        seen = []

        def serialize_a(val, options):
            seen.append((val, ismap(options)))
            return 'A'

        schema = {
            'a': {'serialize': serialize_a},
            'nested': {'b': {'serialize': lambda val, options: 'B'}},
            'multiple': [{'serialize': lambda val, options: 'C'}],
            'nestedModel': other,
            'notInstance': {
                'serialize': lambda val, options: 'never seen',
                'instanceof': lambda val: False,
            },
            'nestedList': listof({'construct': identity}),
            'nestedSet': setof({'construct': identity}),
            'nestedOrderedSet': orderedsetof({'construct': identity}),
        }

        model = Model.create({'typename': 'test-model', 'schema': schema})

        instance = model.factory({
            'nonDefined': 'prop',
            'a': 'a',
            'nested': {'b': 'a nested value'},
            'nestedModel': {'a': 'aaa', 'b': 'bbb'},
            'notInstance': 'not-what-we-expect-it-to-be',
            'multiple': ['values', 'array'],
            'nestedList': ['A', 'B'],
            'nestedSet': ['A', 'B'],
            'nestedOrderedSet': ['C', 'B', 'A'],
        })

        serialized = model.serialize(instance)

        self.assertEqual(type(serialized), dict)
        self.assertEqual(serialized['nonDefined'], 'prop')
        self.assertEqual(serialized['a'], 'A')
        self.assertEqual(seen, [('a', True)])
        self.assertEqual(type(serialized['nested']), dict)
        self.assertEqual(serialized['nested']['b'], 'B')
        self.assertEqual(serialized['nestedModel'], other.serialize(instance['nestedModel']))
        self.assertEqual(serialized['nestedModel'], {'a': 'aaa', 'b': 'bbb'})
        self.assertEqual(serialized['notInstance'], 'not-what-we-expect-it-to-be')
        self.assertEqual(serialized['multiple'], ['C', 'C'])
        self.assertEqual(type(serialized['nestedList']), list)
        self.assertEqual(type(serialized['nestedSet']), list)
        self.assertEqual(serialized['nestedOrderedSet'], ['C', 'B', 'A'])
        self.assertNotIn('__cid', serialized)
        self.assertNotIn('__typename', serialized)


    def test_serialize_options(self):
        seen = []

        def serialize_opt(val, options):
            seen.append(options['omitmeta'])
            return val

        model = Model.create({'typename': 'test', 'schema': {'optionTest': {'serialize': serialize_opt}}})
        instance = model.factory({'optionTest': 'some-value'})

        serialized = model.serialize(instance, {'omitmeta': False})

        self.assertEqual(seen, [False])
        self.assertEqual(serialized['__cid'], instance['__cid'])
        self.assertEqual(serialized['__typename'], 'test')
        self.assertEqual(serialized['optionTest'], 'some-value')


    def test_serialize_refs(self):
        model = Model.create({'typename': 'test', 'schema': {'a': {'serialize': lambda val, options: 'A'}}})
        ref = Ref.create(['some', 'non-existing', 'path'])

        serialized = model.serialize(model.factory({'a': ref}))
        self.assertEqual(serialized['a'], Ref.serialize(ref))
        self.assertEqual(serialized['a'], {'path': ['some', 'non-existing', 'path']})


    def test_serialize_without_context(self):
        model = Model.create('test')
        instance = model.factory({'someProp': 'a'})
        serialize = functools.partial(Model.serialize, model)

        self.assertEqual(serialize(instance), {'someProp': 'a'})
        self.assertEqual(list(map(serialize, [instance, instance])), [{'someProp': 'a'}] * 2)
        self.assertEqual(serialize(instance, {'omitmeta': False})['__cid'], instance['__cid'])


    # merge tests
    # ===========

    def test_merge(self):
        raw_defaults = {'c': 1}
        model = Model.create({'typename': 'test-state', 'defaults': raw_defaults})
        other = Model.create({'typename': 'other-state', 'defaults': raw_defaults})

        base = model.factory({'a': 1, 'c': 3})
        raw_source = {'a': 2, 'b': 3}
        source = model.factory(raw_source)
        other_source = other.factory(raw_source)

        merged = model.merge(base, raw_source)
        self.assertTrue(model.instanceof(merged))
        self.assertEqual(merged, base.update(raw_source))
        self.assertEqual(merged['c'], 3)

        merged = model.merge(base, source)
        self.assertTrue(model.instanceof(merged))
        self.assertEqual(merged['__cid'], base['__cid'])
        self.assertEqual(merged, base.update(raw_defaults, raw_source))

        merge = model.merge
        self.assertEqual(merge(base, source), model.merge(base, source))

        merged = model.merge(base, other_source)
        self.assertTrue(model.instanceof(merged))
        self.assertEqual(merged['__cid'], base['__cid'])

        self.assertEqual(base, {'__cid': base['__cid'], '__typename': 'test-state', 'a': 1, 'c': 3})


    def test_merge_raw_base(self):
        model = Model.create({'typename': 'test', 'defaults': {'c': 1}})

        merged = model.merge({'a': 1}, {'b': 2})
        self.assertTrue(model.instanceof(merged))
        self.assertEqual(merged['a'], 1)
        self.assertEqual(merged['b'], 2)
        self.assertEqual(merged['c'], 1)


    # mergedeep tests
    # ===============

    def test_mergedeep(self):
        other = Model.create('woo')
        calls = []

        def merge_a(existing, incoming, options):
            calls.append((existing, incoming))
            return existing + incoming

        schema = {
            'a': {'mergedeep': merge_a},
            'nested': {
                'b': {'mergedeep': lambda existing, incoming, options: existing + incoming},
            },
            'multiple': [{'mergedeep': lambda *args: 'c3'}],
            'nestedModel': other,
            'notInstance': {
                'mergedeep': lambda existing, incoming, options: existing + incoming,
                'instanceof': lambda val: False,
            },
            'notIncluded': {
                'mergedeep': lambda *args: self.fail('keys not in the source are not merged'),
            },
            'nestedList': listof({'construct': identity}),
            'nestedSet': setof({'construct': identity}),
            'nestedOrderedSet': orderedsetof({'construct': identity}),
        }

        model = Model.create({'typename': 'test-model', 'schema': schema})

        existing = model.factory({
            'a': 'a',
            'nested': {'b': 'b'},
            'nestedModel': {'a': 'a', 'b': 'b'},
            'notInstance': 'a',
            'notTouched': 'a',
            'notIncluded': 'a',
            'multiple': ['values', 'array'],
            'nestedList': ['a', 'b'],
            'nestedSet': ['a', 'b'],
            'nestedOrderedSet': ['c', 'b', 'a'],
        })

        merged = model.mergedeep(existing, {
            'a': '1',
            'nested': {'b': '2'},
            'nestedModel': {'a': 'aaa', 'b': 'bbb'},
            'notInstance': '1',
            'nestedList': ['a1', 'b2'],
            'nestedSet': ['a1', 'b2'],
            'nestedOrderedSet': ['c3', 'b2', 'a1'],
        })

        self.assertTrue(model.instanceof(merged))
        self.assertEqual(merged['__cid'], existing['__cid'])
        self.assertEqual(calls, [('a', '1')])
        self.assertEqual(merged['a'], 'a1')
        self.assertEqual(merged.getin(['nested', 'b']), 'b2')

        self.assertTrue(other.instanceof(merged['nestedModel']))
        self.assertEqual(merged['nestedModel']['__cid'], existing['nestedModel']['__cid'])
        self.assertEqual(merged['nestedModel']['a'], 'aaa')

        self.assertEqual(merged['notInstance'], '1')
        self.assertEqual(merged['notTouched'], 'a')
        self.assertEqual(merged['notIncluded'], 'a')
        self.assertEqual(merged['multiple'], ['values', 'array'])

        self.assertEqual(merged['nestedList'], ['a1', 'b2'])
        self.assertEqual(merged['nestedSet'], frozenset(['a1', 'b2']))
        self.assertEqual(list(merged['nestedOrderedSet']), ['c3', 'b2', 'a1'])


    def test_mergedeep_unchanged(self):
        model = Model.create({'typename': 'test', 'schema': {'n': {'b': {'construct': identity}}}})
        existing = model.factory({'n': {'b': 1}})

        self.assertIs(model.mergedeep(existing, {}), existing)
        self.assertIs(model.mergedeep(existing, None), existing)


    def test_mergedeep_meta(self):
        model = Model.create('test')
        existing = model.factory({'a': 1})

        merged = model.mergedeep(existing, {'__cid': 'other', '__typename': 'other', 'a': 2})
        self.assertEqual(merged['__cid'], existing['__cid'])
        self.assertEqual(merged['__typename'], 'test')
        self.assertEqual(merged['a'], 2)


# If you want to run this file directly, add:
if __name__ == "__main__":
    unittest.main()
