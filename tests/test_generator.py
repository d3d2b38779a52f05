"""Tests for ValueGenerator and the kind registry."""

import dataclasses
import math
import struct
import unicodedata
from datetime import datetime
from urllib.parse import SplitResult

import pytest

from basura import (
    GenerationConfig,
    KindRegistry,
    RecordingSource,
    ReplayingSource,
    ScriptCatalog,
    TraceEntry,
    ValueGenerator,
    build_index,
)
from basura._codepoints import CodepointIndex
from basura._errors import (
    GenerationError,
    TraceExhaustedError,
    TraceMismatchError,
    UnknownScriptError,
)
from basura._generator import FUN_FLOATS, JSON_SAFE_KINDS


def assert_same(a, b):
    """Deep equality that treats NaN as equal to NaN."""
    assert type(a) is type(b)
    if isinstance(a, float) and math.isnan(a):
        assert math.isnan(b)
    elif isinstance(a, (list, tuple)):
        assert len(a) == len(b)
        for x, y in zip(a, b):
            assert_same(x, y)
    elif isinstance(a, dict):
        assert list(a) == list(b)
        for k in a:
            assert_same(a[k], b[k])
    else:
        assert a == b


def test_default_kinds(catalog, config):
    gen = ValueGenerator(catalog, config)
    assert gen.kinds == (
        "bigint", "boolean", "bytes", "datetime", "dict", "float", "integer",
        "list", "none", "set", "string", "tuple", "url",
    )
    assert gen.scripts == ("Common", "Latin", "Greek", "Cyrillic")


def test_record_replay_roundtrip(catalog, config):
    for _ in range(30):
        rec = RecordingSource()
        value = ValueGenerator(catalog, config, rec).generate()
        replay = ReplayingSource(rec.trace)
        assert_same(ValueGenerator(catalog, config, replay).generate(), value)
        assert replay.remaining == 0


def test_replay_of_a_call_sequence(catalog, config):
    rec = RecordingSource()
    gen = ValueGenerator(catalog, config, rec)
    first = [
        gen.generate_kind("string"),
        gen.generate_kind("dict"),
        gen.draw_bytes(5, "raw"),
        gen.draw_codepoint("Greek"),
        gen.pick_script(),
        gen.generate_kind("datetime"),
        gen.generate_kind("url"),
    ]
    gen.source = ReplayingSource(rec.trace)
    second = [
        gen.generate_kind("string"),
        gen.generate_kind("dict"),
        gen.draw_bytes(5, "raw"),
        gen.draw_codepoint("Greek"),
        gen.pick_script(),
        gen.generate_kind("datetime"),
        gen.generate_kind("url"),
    ]
    assert_same(first, second)


def test_default_configs_replay_each_other(catalog):
    assert GenerationConfig() == GenerationConfig()
    rec = RecordingSource()
    recorder = ValueGenerator(catalog, GenerationConfig(), rec)
    values = [recorder.generate_kind("datetime") for _ in range(5)]
    replay = ReplayingSource(rec.trace)
    replayer = ValueGenerator(catalog, GenerationConfig(), replay)
    assert [replayer.generate_kind("datetime") for _ in range(5)] == values
    assert replay.remaining == 0


def test_replay_detects_diverging_config(catalog, config):
    rec = RecordingSource()
    ValueGenerator(catalog, config, rec).generate_kind("list")
    other = dataclasses.replace(config, max_container_size=7)
    gen = ValueGenerator(catalog, other, ReplayingSource(rec.trace))
    with pytest.raises(TraceMismatchError):
        gen.generate_kind("list")


def test_no_leading_combining_mark(catalog, toy_index, config):
    latin = dataclasses.replace(config, allowed_scripts=("Latin",))
    gen = ValueGenerator(catalog, latin)
    for _ in range(300):
        text = gen.generate_string()
        assert len(text) < latin.max_string_length
        if text:
            assert toy_index.lookup(ord(text[0])).category != "Mn"
        assert all(toy_index.lookup(ord(ch)).script == "Latin" for ch in text)


def test_leading_mark_is_discarded_without_counting(catalog, config):
    latin = dataclasses.replace(config, allowed_scripts=("Latin",))
    points = catalog.get("Latin")
    mark = next(i for i, c in enumerate(points) if c.category == "Mn")
    letter = next(i for i, c in enumerate(points) if c.category == "Ll")
    n = len(points)

    def pick(i):
        return TraceEntry(
            i.to_bytes(4, "big"),
            f"_randUInt32,_upto({n}),_pick({n}),codepoint,string",
        )

    trace = [
        TraceEntry(bytes(4), "_randUInt32,_upto(1),_pick(1),script,string"),
        TraceEntry((2).to_bytes(4, "big"), "_randUInt32,_upto(20),stringLength,string"),
        pick(mark),
        pick(letter),
        pick(mark),
    ]
    gen = ValueGenerator(catalog, latin, ReplayingSource(trace))
    text = gen.generate_string()
    assert text == chr(points[letter].code) + chr(points[mark].code)


def test_script_of_only_marks():
    marks = ScriptCatalog(CodepointIndex(*build_index(
        [(0x300, "Mn", "Inherited")], [("0300", "PVALID")],
    )))
    trace = [
        TraceEntry(bytes(4), "_randUInt32,_upto(1),_pick(1),script,string"),
        TraceEntry((3).to_bytes(4, "big"), "_randUInt32,_upto(5),stringLength,string"),
    ]
    gen = ValueGenerator(
        marks, GenerationConfig(max_string_length=5), ReplayingSource(trace),
    )
    with pytest.raises(GenerationError, match="only combining marks"):
        gen.generate_string()


def test_depth_exhaustion_draws_nothing(catalog, config):
    gen = ValueGenerator(catalog, config, ReplayingSource([]))
    deep = config.max_depth + 1
    assert gen.generate(deep) is None
    assert gen.generate_kind("list", deep) == []
    assert gen.generate_kind("tuple", deep) == ()
    assert gen.generate_kind("dict", deep) == {}
    assert gen.generate_kind("set", deep) == set()
    assert gen.generate_kind("bytes", deep) == b""
    assert gen.generate_kind("none", deep) is None
    with pytest.raises(TraceExhaustedError):
        gen.generate(config.max_depth)


def test_values_stay_within_bounds(catalog, config):
    gen = ValueGenerator(catalog, config)

    def check(value, depth):
        assert depth <= config.max_depth + 1
        if isinstance(value, (list, tuple, set, dict)):
            assert len(value) < config.max_container_size
            items = value.values() if isinstance(value, dict) else value
            for item in items:
                check(item, depth + 1)

    for _ in range(50):
        check(gen.generate(), 0)


def test_integer_and_bigint_ranges(catalog, config):
    gen = ValueGenerator(catalog, config)
    for _ in range(200):
        n = gen.generate_integer()
        assert -0x7FFFFFFF <= n <= 0x80000000
        b = gen.generate_bigint()
        assert abs(b).bit_length() <= 8 * (config.max_string_length - 1)


def test_bigint_draw_order(catalog, config):
    trace = [
        TraceEntry((1).to_bytes(4, "big"),
                   "_randUInt32,_upto(19),_randUBigInt len,signed"),
        TraceEntry(b"\x01\x00", "_randUBigInt,signed"),
        TraceEntry((1).to_bytes(4, "big"), "_randUInt32,_upto(2),bigint sign"),
    ]
    gen = ValueGenerator(catalog, config, ReplayingSource(trace))
    assert gen.generate_bigint() == -256


def test_float_redraws_non_finite(catalog, config):
    trace = [
        TraceEntry(bytes(6) + b"\x08\x3f", "_random01,float"),
        TraceEntry(struct.pack(">d", math.inf), "float"),
        TraceEntry(struct.pack(">d", math.nan), "float"),
        TraceEntry(struct.pack(">d", 1.5), "float"),
    ]
    gen = ValueGenerator(catalog, config, ReplayingSource(trace))
    assert gen.generate_float() == 1.5


def test_fun_float(catalog, config):
    n = len(FUN_FLOATS)
    trace = [
        TraceEntry(bytes(8), "_random01,float"),
        TraceEntry((2).to_bytes(4, "big"),
                   f"_randUInt32,_upto({n}),_pick({n}),fun float"),
    ]
    gen = ValueGenerator(catalog, config, ReplayingSource(trace))
    value = gen.generate_float()
    assert value == 0.0 and math.copysign(1.0, value) == -1.0


def test_datetime_centered(catalog, config):
    gen = ValueGenerator(catalog, config)
    for _ in range(50):
        d = gen.generate_datetime()
        assert isinstance(d, datetime)
        assert d.tzinfo is not None
        assert 1800 < d.year < 2250


def test_sets_hold_hashable_values(catalog, config):
    gen = ValueGenerator(catalog, config)
    for _ in range(50):
        s = gen.generate_kind("set")
        assert isinstance(s, set)
        assert not any(isinstance(x, (list, dict, set)) for x in s)


def test_dict_keys_are_strings(catalog, config):
    gen = ValueGenerator(catalog, config)
    for _ in range(50):
        assert all(isinstance(k, str) for k in gen.generate_kind("dict"))


# -- Structured text --

def test_url_label_follows_tld_script(catalog, toy_index, config):
    gen = ValueGenerator(catalog, dataclasses.replace(config, tlds=("рф",)))
    for _ in range(50):
        url = gen.generate_url()
        assert isinstance(url, SplitResult)
        assert url.scheme in ("http", "https", "ftp")
        host = url.netloc.split(":")[0]
        assert host.endswith(".рф")
        label = host[: -len(".рф")]
        assert 1 <= len(label) < config.max_string_length
        first = toy_index.lookup(ord(label[0]))
        assert first.script == "Cyrillic"
        assert first.category in ("Ll", "Lm", "Lo")
        assert all(toy_index.lookup(ord(ch)).property == "PVALID" for ch in label)
        assert url.path.startswith("/")


def test_url_from_latin_tld(catalog, config):
    gen = ValueGenerator(catalog, dataclasses.replace(config, tlds=("com",)))
    for _ in range(50):
        label = gen.generate_host_label("com")
        assert unicodedata.normalize("NFC", label) == label
        assert unicodedata.category(label[0]) == "Ll"
        assert all(unicodedata.category(ch) in ("Ll", "Mn") for ch in label)


def test_url_tld_without_script(catalog, config):
    gen = ValueGenerator(catalog, dataclasses.replace(config, tlds=("עברית",)))
    with pytest.raises(GenerationError, match="no classified script"):
        gen.generate_url()


# -- Configuration and registry --

def test_json_safe(catalog, config):
    gen = ValueGenerator(catalog, dataclasses.replace(config, json_safe=True))
    assert set(gen.kinds) == JSON_SAFE_KINDS
    for _ in range(200):
        assert math.isfinite(gen.generate_float())


def test_overrides_and_exclusions(catalog, config):
    custom = dataclasses.replace(
        config,
        overrides=(("list", None), ("answer", lambda g, depth: 42),
                   ("gone", lambda g, depth: 0), ("gone", None)),
        excluded_kinds=frozenset({"url", "no-such-kind"}),
    )
    gen = ValueGenerator(catalog, custom)
    assert "answer" in gen.kinds
    assert "list" not in gen.kinds
    assert "url" not in gen.kinds
    assert "gone" not in gen.kinds
    assert gen.generate_kind("answer") == 42
    with pytest.raises(GenerationError, match="not enabled"):
        gen.generate_kind("list")


def test_registry_builder_returns_new_registries():
    base = KindRegistry.default()
    smaller = base.without("list", "tuple")
    assert "list" in base and "list" not in smaller
    assert len(base) - len(smaller) == 2
    only = base.only(["string", "none"])
    assert only.names() == ("none", "string")
    assert base.names(hashable=True) == (
        "bigint", "boolean", "bytes", "datetime", "float", "integer", "none",
        "string", "url",
    )


def test_no_kinds_enabled(catalog, config):
    empty = dataclasses.replace(
        config, excluded_kinds=frozenset(KindRegistry.default().names()),
    )
    with pytest.raises(GenerationError, match="No kinds"):
        ValueGenerator(catalog, empty)


def test_set_without_hashable_kinds(catalog, config):
    only_containers = dataclasses.replace(
        config,
        excluded_kinds=frozenset(KindRegistry.default().names(hashable=True)),
    )
    gen = ValueGenerator(catalog, only_containers)
    with pytest.raises(GenerationError, match="hashable"):
        gen.generate(hashable=True)


def test_unknown_allowed_script(catalog, config):
    with pytest.raises(UnknownScriptError):
        ValueGenerator(
            catalog, dataclasses.replace(config, allowed_scripts=("Klingon",)),
        )


@pytest.mark.parametrize("kwargs", [
    {"max_container_size": -1},
    {"max_string_length": 0},
    {"allowed_scripts": ()},
    {"allowed_scripts": "Latin"},
    {"date_center": datetime(2020, 1, 1)},
])
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        GenerationConfig(**kwargs)


def test_collaborator_surface(catalog, config):
    gen = ValueGenerator(catalog, config)
    assert len(gen.draw_bytes(7)) == 7
    info = gen.draw_codepoint("Latin", ["Ll"])
    assert info.script == "Latin" and info.category == "Ll"
    assert gen.draw_codepoint("Cyrillic", True).property == "PVALID"
    assert gen.pick_script() in gen.scripts
    with pytest.raises(GenerationError):
        gen.draw_codepoint("Greek", ["Lu"])
    replay = ReplayingSource([])
    gen.source = replay
    assert gen.source is replay
