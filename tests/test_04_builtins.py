"""
Built-in Macro Test Suite
=========================
Tests for:
  - data   (variable store actions)
  - random, math
  - say, log, wait
"""

from __future__ import annotations

import logging
import time
import uuid

import pytest

from charmscript.services.macros import ArgumentShapeError, MacroRuntimeError
from charmscript.services.macros.macro_math import calculate
from charmscript.services.macros.macro_message import parse_duration
from charmscript.services.variables import MemoryVariableStore

from tests.conftest import evaluate, make_engine, run


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 1. data
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestDataMacro:
    def setup_method(self):
        self.store = MemoryVariableStore()

    def eval(self, text):
        result, _ = evaluate(text, store=self.store)
        return result

    def stored(self, key):
        return run(self.store.get(key))

    def test_set_and_get(self):
        assert self.eval("$data[set; greeting; hello]") == "hello"
        assert self.eval("$data[get; greeting]") == "hello"
        assert self.eval("$data[greeting]") == "hello"

    def test_two_argument_shorthand_sets(self):
        self.eval("$data[color; blue]")
        assert self.stored("color") == "blue"

    def test_nested_value_evaluated_first(self):
        self.eval("$data[set; roll; $random[1, 1]]")
        assert self.stored("roll") == "1"

    def test_arithmetic(self):
        assert self.eval("$data[add; points; 5]") == 5
        assert self.eval("$data[add; points; 2.5]") == 7.5
        assert self.eval("$data[mul; points; 2]") == 15
        assert self.eval("$data[sub; points; 5]") == 10
        assert self.eval("$data[div; points; 4]") == 2.5

    def test_inc_dec(self):
        self.eval("$data[inc; n]")
        self.eval("$data[inc; n]")
        assert self.eval("$data[dec; n]") == 1

    def test_divide_by_zero(self):
        with pytest.raises(MacroRuntimeError) as exc:
            self.eval("$data[div; n; 0]")
        assert exc.value.context.kind == "ZeroDivisionError"

    def test_non_numeric_amount(self):
        with pytest.raises(ArgumentShapeError):
            self.eval("$data[add; n; lots]")

    def test_append_list_and_text(self):
        run(self.store.set("xs", [1]))
        assert self.eval("$data[append; xs; 2]") == [1, "2"]
        assert self.eval("$data[prepend; xs; 0]") == ["0", 1, "2"]
        run(self.store.set("s", "b"))
        self.eval("$data[append; s; c]")
        self.eval("$data[prepend; s; a]")
        assert self.stored("s") == "abc"

    def test_exists_delete(self):
        assert self.eval("$data[exists; k]") is False
        self.eval("$data[set; k; v]")
        assert self.eval("$data[exists; k]") is True
        assert self.eval("$data[delete; k]") is True
        assert self.eval("$data[remove; k]") is False

    def test_length_and_type(self):
        run(self.store.set("xs", [1, 2, 3]))
        assert self.eval("$data[length; xs]") == 3
        assert self.eval("$data[length; missing]") == 0
        assert self.eval("$data[type; xs]") == "array"
        assert self.eval("$data[type; missing]") == "undefined"

    def test_list_and_clear(self):
        self.eval("$data[set; b; 1]")
        self.eval("$data[set; a; 2]")
        assert self.eval("$data[list]") == ["a", "b"]
        assert self.eval("$data[clear]") is True
        assert self.eval("$data[list]") == []

    def test_key_value_form(self):
        self.eval("$data[action: add; key: score; amount: 3]")
        assert self.stored("score") == 3

    def test_structured_value_kept(self):
        self.eval('$data[{"action": "set", "key": "profile", "value": {"name": "Ana"}}]')
        assert self.stored("profile") == {"name": "Ana"}
        result, _ = evaluate("$say[$$profile.name]", store=self.store)
        assert result is None

    def test_dotted_key_rejected(self):
        with pytest.raises(MacroRuntimeError) as exc:
            self.eval("$data[set; user.name; Ana]")
        assert exc.value.context.kind == "ValueError"

    def test_invalid_action(self):
        with pytest.raises(ArgumentShapeError):
            self.eval("$data[action: explode; key: k]")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 2. random / math
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestRandomMacro:
    def test_fixed_range(self):
        result, _ = evaluate("$random[1, 1]")
        assert result == 1

    def test_reversed_bounds(self):
        result, _ = evaluate("$random[5, 5]")
        assert result == 5

    def test_max_only(self):
        for _ in range(20):
            result, _ = evaluate("$random[3]")
            assert 0 <= result <= 3

    def test_choice(self):
        result, _ = evaluate('$random[{"type": "choice", "choices": ["only"]}]')
        assert result == "only"

    def test_string_length(self):
        result, _ = evaluate("$random[type: string; length: 8]")
        assert len(result) == 8 and result.isalnum()

    def test_uuid(self):
        result, _ = evaluate('$random[{"type": "uuid"}]')
        assert str(uuid.UUID(result)) == result

    def test_float_precision(self):
        result, _ = evaluate('$random[{"type": "float", "min": 1, "max": 2, "precision": 1}]')
        assert 1 <= result <= 2
        assert round(result, 1) == result

    def test_unknown_type(self):
        with pytest.raises(ArgumentShapeError):
            evaluate('$random[{"type": "dice"}]')

    def test_non_numeric_bound(self):
        with pytest.raises(ArgumentShapeError):
            evaluate("$random[a, b]")


class TestMathMacro:
    @pytest.mark.parametrize("code, expected", [
        ("$math[add, 1, 2, 3]", 6),
        ("$math[+, 1, 2]", 3),
        ("$math[sub, 10, 4, 1]", 5),
        ("$math[div, 10, 4]", 2.5),
        ("$math[pow, 2, 10]", 1024),
        ("$math[sqrt, 16]", 4),
        ("$math[round, 2.5]", 3),
        ("$math[min, 4, 2, 8]", 2),
        ("$math[mod, 10, 3]", 1),
        ("$math[add, 0.1, 0.2]", 0.3),
    ])
    def test_operations(self, code, expected):
        result, _ = evaluate(code)
        assert result == expected

    def test_structured(self):
        result, _ = evaluate('$math[{"operation": "avg", "values": [1, 2]}]')
        assert result == 1.5

    def test_key_value_comma_values(self):
        result, _ = evaluate("$math[operation: sum; values: 1, 2, 3]")
        assert result == 6

    def test_precision(self):
        assert calculate("div", [1, 3], precision=3) == 0.333
        assert calculate("div", [1, 3], precision=None) == 1 / 3

    def test_division_by_zero(self):
        with pytest.raises(MacroRuntimeError):
            evaluate("$math[div, 1, 0]")

    def test_unknown_operation(self):
        with pytest.raises(ArgumentShapeError):
            evaluate("$math[frobnicate, 1]")

    def test_non_numeric_value(self):
        with pytest.raises(ArgumentShapeError):
            evaluate("$math[add, 1, two]")

    def test_nested_in_text(self):
        result, _ = evaluate("total: $math[add, 2, 3] coins")
        assert result == "total: 5 coins"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 3. say / log / wait
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestSayMacro:
    def test_records_message(self):
        result, ctx = evaluate("$say[hello, world]")
        assert result is None
        assert ctx.responses == ["hello, world"]

    def test_structured_payload(self):
        _, ctx = evaluate('$say[{"content": "hi", "embed": {"title": "$$1"}}]', args=["T"])
        assert ctx.responses == [{"content": "hi", "embed": {"title": "T"}}]

    def test_forwards_to_sender(self):
        sent = []

        async def sender(message):
            sent.append(message)

        evaluate("$say[a]$say[b]", sender=sender)
        assert sent == ["a", "b"]

    def test_empty_message_rejected(self):
        with pytest.raises(ArgumentShapeError):
            evaluate("$say[]")


class TestLogMacro:
    def test_level_and_message(self, caplog):
        caplog.set_level(logging.DEBUG, logger="charmscript")
        result, _ = evaluate("$log[warn; careful now]")
        assert result is None
        record = next(r for r in caplog.records if "careful now" in r.getMessage())
        assert record.levelno == logging.WARNING

    def test_default_level_info(self, caplog):
        caplog.set_level(logging.DEBUG, logger="charmscript")
        evaluate("$log[just saying]")
        record = next(r for r in caplog.records if "just saying" in r.getMessage())
        assert record.levelno == logging.INFO

    def test_invalid_level(self):
        with pytest.raises(ArgumentShapeError):
            evaluate("$log[level: loud; message: x]")


class TestWaitMacro:
    @pytest.mark.parametrize("text, seconds", [
        ("250ms", 0.25),
        ("2s", 2.0),
        ("1m", 60.0),
        ("1.5", 1.5),
        ("1H", 3600.0),
    ])
    def test_parse_duration(self, text, seconds):
        assert parse_duration(text) == seconds

    def test_invalid_duration(self):
        with pytest.raises(ArgumentShapeError):
            parse_duration("soon")

    def test_short_wait(self):
        result, _ = evaluate("$wait[10ms]")
        assert result is None

    def test_capped_by_settings(self):
        started = time.monotonic()
        evaluate("$wait[10s]", make_engine(wait_max_seconds=0.01))
        assert time.monotonic() - started < 5
