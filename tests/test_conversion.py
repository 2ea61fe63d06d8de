"""Tests for engine ↔ Value conversion, including every leak path.

All tests run against FakeEngine, which counts every allocation and
fails loudly on double frees, so `assert_clean()` after a failure proves
that each handle built so far was released exactly once.
"""

from __future__ import annotations

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.dirname(__file__))

from fake_engine import FakeEngine

from gbln import (
    ERR_CONVERSION,
    ConversionError,
    ErrorCode,
    StringTooLong,
    Value,
    ValueType,
)
from gbln._conversion import foreign_to_value, value_to_foreign
from gbln._handles import ValueHandle


def _parsed(eng: FakeEngine, text: str) -> ValueHandle:
    code, ptr = eng.parse(text.encode("utf-8"))
    assert code == ErrorCode.OK, eng.last_message
    return ValueHandle(eng, ptr)


# ── engine → Value ────────────────────────────────────────────

class TestForeignToValue(unittest.TestCase):
    def test_every_integer_width_lands_in_int_lane(self):
        eng = FakeEngine()
        text = ("a<i8>(-8)b<i16>(-300)c<i32>(-70000)d<i64>(-5000000000)"
                "e<u8>(8)f<u16>(300)g<u32>(70000)h<u64>(5000000000)")
        with _parsed(eng, text) as root:
            v = foreign_to_value(eng, root.ptr)
        self.assertEqual(v.to_python(), {
            "a": -8, "b": -300, "c": -70000, "d": -5000000000,
            "e": 8, "f": 300, "g": 70000, "h": 5000000000,
        })
        for key in "abcdefgh":
            self.assertTrue(v[key].is_int())
        eng.assert_clean()

    def test_floats_widen(self):
        eng = FakeEngine()
        with _parsed(eng, "x<f32>(0.1)y<f64>(0.1)") as root:
            v = foreign_to_value(eng, root.ptr)
        self.assertTrue(v["x"].is_float())
        self.assertAlmostEqual(v["x"].as_float(), 0.1, places=6)
        self.assertEqual(v["y"].as_float(), 0.1)
        eng.assert_clean()

    def test_scalars(self):
        eng = FakeEngine()
        with _parsed(eng, "t<b>(t)f<b>(f)z<n>()s<s16>(hello world)") as root:
            v = foreign_to_value(eng, root.ptr)
        self.assertIs(v["t"].as_bool(), True)
        self.assertIs(v["f"].as_bool(), False)
        self.assertTrue(v["z"].is_null())
        self.assertEqual(v["s"].as_string(), "hello world")
        eng.assert_clean()

    def test_nested_containers(self):
        eng = FakeEngine()
        text = "doc{items[<u8>(1){name<s8>(x)}[]]empty{}}"
        with _parsed(eng, text) as root:
            v = foreign_to_value(eng, root.ptr)
        self.assertEqual(v.to_python(), {"doc": {"items": [1, {"name": "x"}, []], "empty": {}}})
        self.assertEqual(eng.freed["keys"], 3)
        eng.assert_clean()

    def test_u64_beyond_int64_fails(self):
        eng = FakeEngine()
        with _parsed(eng, "big<u64>(18446744073709551615)") as root:
            with self.assertRaises(ConversionError):
                foreign_to_value(eng, root.ptr)
        eng.assert_clean()

    def test_null_pointer(self):
        with self.assertRaises(ConversionError) as ctx:
            foreign_to_value(FakeEngine(), None)
        self.assertEqual(ctx.exception.code, ERR_CONVERSION)

    def test_unknown_tag(self):
        eng = FakeEngine()
        with _parsed(eng, "a{b<u8>(1)}") as root:
            eng.retag(eng.find(root.ptr, "a", "b"), 99)
            with self.assertRaises(ConversionError) as ctx:
                foreign_to_value(eng, root.ptr)
        self.assertIn("99", str(ctx.exception))
        eng.assert_clean()

    def test_middle_level_extraction_failure_releases_outer_key_lists(self):
        eng = FakeEngine()
        text = "top{mid{leaf<u8>(1)bad<s8>(oops)}sibling<u8>(2)}"
        with _parsed(eng, text) as root:
            eng.poison(eng.find(root.ptr, "top", "mid", "bad"))
            with self.assertRaises(ConversionError):
                foreign_to_value(eng, root.ptr)
            # Key lists at every level above the failure are gone already.
            self.assertEqual(len(eng.key_lists), 0)
            self.assertEqual(eng.freed["keys"], 3)
        eng.assert_clean()

    def test_failing_key_enumeration(self):
        eng = FakeEngine()
        with _parsed(eng, "outer{inner{a<u8>(1)}}") as root:
            eng.poison(eng.find(root.ptr, "outer", "inner"))
            with self.assertRaises(ConversionError):
                foreign_to_value(eng, root.ptr)
        eng.assert_clean()

    def test_missing_child_for_key(self):
        eng = FakeEngine()
        eng.hide_keys.add("gone")
        with _parsed(eng, "a<u8>(1)gone<u8>(2)") as root:
            with self.assertRaises(ConversionError) as ctx:
                foreign_to_value(eng, root.ptr)
        self.assertIn("gone", str(ctx.exception))
        eng.assert_clean()

    def test_missing_array_element(self):
        eng = FakeEngine()
        with _parsed(eng, "list[<u8>(1)<u8>(2)]") as root:
            eng.poison(eng.find(root.ptr, "list"))
            with self.assertRaises(ConversionError):
                foreign_to_value(eng, root.ptr)
        eng.assert_clean()

    def test_failure_inside_array_inside_object(self):
        eng = FakeEngine()
        with _parsed(eng, "a{b[{c<b>(t)}{d<b>(f)}]}") as root:
            eng.poison(eng.find(root.ptr, "a", "b", 1, "d"))
            with self.assertRaises(ConversionError):
                foreign_to_value(eng, root.ptr)
        eng.assert_clean()


# ── Value → engine ────────────────────────────────────────────

class TestValueToForeign(unittest.TestCase):
    def test_optimal_integer_types(self):
        eng = FakeEngine()
        v = Value({"small": 200, "neg": -5, "mid": 70000, "huge": 2**40, "low": -(2**40)})
        with value_to_foreign(eng, v) as h:
            types = {k: eng.value_type(eng.find(h.ptr, k)) for k in v}
        self.assertEqual(types, {
            "small": ValueType.U8,
            "neg": ValueType.I8,
            "mid": ValueType.U32,
            "huge": ValueType.U64,
            "low": ValueType.I64,
        })
        eng.assert_clean()

    def test_optimal_string_capacity(self):
        eng = FakeEngine()
        with value_to_foreign(eng, Value(["", "abc", "x" * 17])) as h:
            caps = [eng.values[eng.find(h.ptr, i)].capacity for i in range(3)]
        self.assertEqual(caps, [2, 4, 32])
        eng.assert_clean()

    def test_float_goes_out_as_f64(self):
        eng = FakeEngine()
        with value_to_foreign(eng, Value(1.25)) as h:
            self.assertEqual(eng.value_type(h.ptr), ValueType.F64)
        eng.assert_clean()

    def test_object_keys_sorted(self):
        eng = FakeEngine()
        with value_to_foreign(eng, Value({"z": 1, "a": 2, "m": 3})) as h:
            kptr, count = eng.object_keys(h.ptr)
            keys = [eng.key_at(kptr, i) for i in range(count)]
            eng.keys_free(kptr, count)
        self.assertEqual(keys, [b"a", b"m", b"z"])
        eng.assert_clean()

    def test_result_owns_whole_tree(self):
        eng = FakeEngine()
        h = value_to_foreign(eng, Value({"a": [1, {"b": None}], "c": "x"}))
        self.assertEqual(eng.live_values(), 6)
        h.release()
        eng.assert_clean()

    def test_duplicate_key_insert_releases_child_and_object(self):
        eng = FakeEngine()
        eng.reject_keys.add("b")
        v = Value({"a": 1, "b": {"deep": [1, 2, 3]}, "c": 3})
        with self.assertRaises(ConversionError) as ctx:
            value_to_foreign(eng, v)
        self.assertIn("b", str(ctx.exception))
        eng.assert_clean()
        # object + a + rejected subtree (object, array, 3 ints)
        self.assertEqual(eng.freed["value"], 7)

    def test_rejected_insert_deep_inside_tree(self):
        eng = FakeEngine()
        eng.reject_keys.add("leaf")
        v = Value({"l1": {"l2": {"l3": {"leaf": "x", "other": 1}}}, "z": True})
        with self.assertRaises(ConversionError):
            value_to_foreign(eng, v)
        eng.assert_clean()

    def test_rejected_push_releases_everything(self):
        eng = FakeEngine()
        eng.reject_push_at = 2
        v = Value({"list": [{"a": 1}, [2], "three", 4]})
        with self.assertRaises(ConversionError) as ctx:
            value_to_foreign(eng, v)
        self.assertIn("element 2", str(ctx.exception))
        eng.assert_clean()

    def test_constructor_failure_releases_siblings(self):
        eng = FakeEngine()
        eng.refuse_new.add("bool")
        with self.assertRaises(ConversionError):
            value_to_foreign(eng, Value({"a": "x", "b": [1, 2], "c": {"d": False}}))
        eng.assert_clean()

    def test_container_constructor_failure(self):
        cases = (
            ("object", Value([None, {"a": 1}])),
            ("array", Value({"outer": [None]})),
        )
        for kind, value in cases:
            with self.subTest(kind=kind):
                eng = FakeEngine()
                eng.refuse_new.add(kind)
                with self.assertRaises(ConversionError):
                    value_to_foreign(eng, value)
                eng.assert_clean()

    def test_non_value_input_rejected(self):
        eng = FakeEngine()
        for data in (5, {"a": 1}, [Value(1)]):
            with self.subTest(data=data):
                with self.assertRaises(ConversionError) as ctx:
                    value_to_foreign(eng, data)
                self.assertIn("expected a Value", str(ctx.exception))
        self.assertEqual(eng.created, [])

    def test_shared_and_self_inserted_children_build_trees(self):
        eng = FakeEngine()
        child = Value([1])
        v = Value({"a": child, "b": child})
        v["self"] = v
        child.append(2)
        with value_to_foreign(eng, v) as h:
            back = foreign_to_value(eng, h.ptr)
        self.assertEqual(back.to_python(), {
            "a": [1], "b": [1], "self": {"a": [1], "b": [1]},
        })
        eng.assert_clean()

    def test_string_too_long_releases_partial_tree(self):
        eng = FakeEngine()
        v = Value({"ok": "short", "list": [1, "y" * 1025]})
        with self.assertRaises(StringTooLong):
            value_to_foreign(eng, v)
        eng.assert_clean()


# ── Round trip through the engine ─────────────────────────────

class TestRoundTrip(unittest.TestCase):
    SAMPLES = [
        None,
        True,
        0,
        -(2**63),
        2**63 - 1,
        1.5,
        "",
        "héllo wörld",
        [],
        {},
        {"user": {"id": 12345, "name": "Alice", "age": 25, "active": True}},
        {"mixed": [1, -1, 2.5, "s", None, False, {"k": [[]]}]},
    ]

    def test_value_survives_round_trip(self):
        for data in self.SAMPLES:
            with self.subTest(data=data):
                eng = FakeEngine()
                v = Value(data)
                with value_to_foreign(eng, v) as h:
                    back = foreign_to_value(eng, h.ptr)
                self.assertEqual(back, v)
                eng.assert_clean()


if __name__ == "__main__":
    unittest.main()
