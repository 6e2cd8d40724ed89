import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from zapcore.field import Field, FieldType, add_fields, encode_error
from zapcore.memory_encoder import MapObjectEncoder


@dataclass(frozen=True)
class Users:
    n: int

    def __str__(self):
        return f"{self.n} users"

    def marshal_log_object(self, enc):
        if self.n < 0:
            raise ValueError("too few users")
        enc.add_int("users", self.n)

    def marshal_log_array(self, enc):
        if self.n < 0:
            raise ValueError("too few users")
        for _ in range(self.n):
            enc.append_string("user")


@dataclass(frozen=True)
class Ints:
    values: tuple

    def marshal_log_array(self, enc):
        for v in self.values:
            enc.append_int(v)


class Obj:
    def __init__(self, kind=0):
        self.kind = kind

    def __str__(self):
        if self.kind == 1:
            raise RuntimeError("panic with string")
        if self.kind == 2:
            raise ValueError("panic with error")
        return "obj"


class ErrObj(Exception):
    def __init__(self, kind=0, msg=""):
        super().__init__(msg)
        self.kind = kind
        self.msg = msg

    def __str__(self):
        if self.kind == 1:
            raise RuntimeError("panic in Error() method")
        return self.msg


class TooManyUsers(Exception):
    def __init__(self, n):
        super().__init__(n)
        self.n = n

    def __str__(self):
        return f"{self.n} too many users"

    def __format__(self, spec):
        return str(self)


class RichError(Exception):
    def __format__(self, spec):
        if spec == "+v":
            return "failed\nwith stack"
        return str(self)


class MultiError(Exception):
    def __init__(self, *errs):
        super().__init__(*errs)
        self._errs = list(errs)

    def __str__(self):
        return "; ".join(str(e) for e in self._errs if e is not None)

    def errors(self):
        return list(self._errs)


class CustomMultierr(Exception):
    def __str__(self):
        return "great sadness"

    def errors(self):
        return [
            ValueError("foo"),
            None,
            MultiError(ValueError("bar"), ValueError("baz")),
        ]


def _wrapped(message, cause):
    try:
        raise RuntimeError(message) from cause
    except RuntimeError as exc:
        return exc


def _f64_bits(value):
    return struct.unpack("<Q", struct.pack("<d", value))[0]


def _f32_bits(value):
    return struct.unpack("<I", struct.pack("<f", value))[0]


def test_unknown_field_type_raises():
    unknown = Field(key="k", string="foo")
    assert unknown.type == FieldType.UNKNOWN
    with pytest.raises(TypeError, match="unknown field type"):
        unknown.add_to(MapObjectEncoder())


@pytest.mark.parametrize(
    "kind, iface, want, err",
    [
        (FieldType.ARRAY_MARSHALER, Users(-1), [], "too few users"),
        (FieldType.OBJECT_MARSHALER, Users(-1), {}, "too few users"),
        (FieldType.INLINE_MARSHALER, Users(-1), None, "too few users"),
        (FieldType.STRINGER, Obj(1), None, "PANIC=panic with string"),
        (FieldType.STRINGER, Obj(2), None, "PANIC=panic with error"),
        (FieldType.ERROR, ErrObj(kind=1), None, "PANIC=panic in Error() method"),
    ],
)
def test_field_adding_error(kind, iface, want, err):
    enc = MapObjectEncoder()
    Field(key="k", type=kind, interface=iface).add_to(enc)
    assert enc.fields.get("k") == want
    assert enc.fields["kError"] == err


@pytest.mark.parametrize(
    "kind, integer, string, iface, want",
    [
        (FieldType.ARRAY_MARSHALER, 0, "", Users(2), ["user", "user"]),
        (FieldType.OBJECT_MARSHALER, 0, "", Users(2), {"users": 2}),
        (FieldType.BOOL, 0, "", None, False),
        (FieldType.BOOL, 1, "", None, True),
        (FieldType.BYTE_STRING, 0, "", b"foo", "foo"),
        (FieldType.BINARY, 0, "", b"foo", b"foo"),
        (FieldType.COMPLEX128, 0, "", 1 + 2j, 1 + 2j),
        (FieldType.COMPLEX64, 0, "", 1 + 2j, 1 + 2j),
        (FieldType.DURATION, 1000, "", None, 1000),
        (FieldType.FLOAT64, _f64_bits(3.14), "", None, 3.14),
        (FieldType.INT64, 42, "", None, 42),
        (FieldType.INT32, 42, "", None, 42),
        (FieldType.INT16, 42, "", None, 42),
        (FieldType.INT8, 42, "", None, 42),
        (FieldType.INT8, 255, "", None, -1),
        (FieldType.STRING, 0, "foo", None, "foo"),
        (FieldType.UINT64, 42, "", None, 42),
        (FieldType.UINT64, -1, "", None, 2**64 - 1),
        (FieldType.UINT32, 42, "", None, 42),
        (FieldType.UINT16, 42, "", None, 42),
        (FieldType.UINT8, 42, "", None, 42),
        (FieldType.UINT8, 256 + 7, "", None, 7),
        (FieldType.UINTPTR, 42, "", None, 42),
        (FieldType.REFLECT, 0, "", Users(2), Users(2)),
        (FieldType.NAMESPACE, 0, "", None, {}),
        (FieldType.STRINGER, 0, "", Users(2), "2 users"),
        (FieldType.STRINGER, 0, "", Obj(), "obj"),
        (FieldType.STRINGER, 0, "", None, "<nil>"),
        (FieldType.SKIP, 0, "", None, None),
        (FieldType.ERROR, 0, "", None, "<nil>"),
    ],
)
def test_fields(kind, integer, string, iface, want):
    enc = MapObjectEncoder()
    f = Field(key="k", type=kind, integer=integer, string=string, interface=iface)
    f.add_to(enc)
    assert enc.fields.get("k") == want
    enc.fields.pop("k", None)
    assert enc.fields == {}
    assert f.equals(f)


def test_float32_field():
    enc = MapObjectEncoder()
    Field(key="k", type=FieldType.FLOAT32, integer=_f32_bits(3.14)).add_to(enc)
    assert enc.fields["k"] == pytest.approx(3.14, rel=1e-6)
    assert enc.fields["k"] != 3.14


def test_time_field_with_zone():
    enc = MapObjectEncoder()
    Field(key="k", type=FieldType.TIME, integer=1000, interface=timezone.utc).add_to(enc)
    assert enc.fields["k"] == datetime(1970, 1, 1, 0, 0, 0, 1, tzinfo=timezone.utc)
    assert enc.fields["k"].tzinfo == timezone.utc


def test_time_field_without_zone_uses_local():
    enc = MapObjectEncoder()
    Field(key="k", type=FieldType.TIME, integer=1000).add_to(enc)
    assert enc.fields["k"].timestamp() == pytest.approx(1e-6)
    assert enc.fields["k"].tzinfo is not None


def test_time_full_field():
    moment = datetime(2020, 6, 4, 9, 21, 58, tzinfo=timezone.utc)
    enc = MapObjectEncoder()
    Field(key="k", type=FieldType.TIME_FULL, interface=moment).add_to(enc)
    assert enc.fields["k"] == moment


def test_inline_marshaler():
    enc = MapObjectEncoder()
    Field(key="k", type=FieldType.STRING, string="s").add_to(enc)
    Field(key="ignored", type=FieldType.INLINE_MARSHALER, interface=Users(10)).add_to(enc)
    Field(key="nested", type=FieldType.OBJECT_MARSHALER, interface=Users(11)).add_to(enc)
    assert enc.fields == {"k": "s", "users": 10, "nested": {"users": 11}}


def test_add_fields_in_order():
    enc = MapObjectEncoder()
    add_fields(
        enc,
        [
            Field(key="a", type=FieldType.INT64, integer=1),
            Field(key="ns", type=FieldType.NAMESPACE),
            Field(key="b", type=FieldType.STRING, string="x"),
        ],
    )
    assert enc.fields == {"a": 1, "ns": {"b": "x"}}


def _time_field(nanos, tz):
    return Field(key="k", type=FieldType.TIME, integer=nanos, interface=tz)


@pytest.mark.parametrize(
    "a, b, want",
    [
        (
            Field(key="a", type=FieldType.INT16, integer=1),
            Field(key="a", type=FieldType.INT32, integer=1),
            False,
        ),
        (
            Field(key="k", type=FieldType.STRING, string="a"),
            Field(key="k", type=FieldType.STRING, string="a"),
            True,
        ),
        (
            Field(key="k", type=FieldType.STRING, string="a"),
            Field(key="k2", type=FieldType.STRING, string="a"),
            False,
        ),
        (
            Field(key="k", type=FieldType.STRING, string="a"),
            Field(key="k", type=FieldType.STRING, string="b"),
            False,
        ),
        (
            _time_field(1000 * 10**9 + 1000, timezone.utc),
            _time_field(1000 * 10**9 + 1000, timezone.utc),
            True,
        ),
        (
            _time_field(1000 * 10**9 + 1000, timezone.utc),
            _time_field(1000 * 10**9 + 1000, timezone(timedelta(seconds=-8), "TEST")),
            False,
        ),
        (
            _time_field(1000 * 10**9 + 1000, timezone.utc),
            _time_field(1000 * 10**9 + 2000, timezone.utc),
            False,
        ),
        (
            Field(key="k", type=FieldType.BINARY, interface=bytes([1, 2])),
            Field(key="k", type=FieldType.BINARY, interface=bytes([1, 2])),
            True,
        ),
        (
            Field(key="k", type=FieldType.BINARY, interface=bytes([1, 2])),
            Field(key="k", type=FieldType.BINARY, interface=bytes([1, 3])),
            False,
        ),
        (
            Field(key="k", type=FieldType.BYTE_STRING, interface=b"abc"),
            Field(key="k", type=FieldType.BYTE_STRING, interface=b"abc"),
            True,
        ),
        (
            Field(key="k", type=FieldType.BYTE_STRING, interface=b"abc"),
            Field(key="k", type=FieldType.BYTE_STRING, interface=b"abd"),
            False,
        ),
        (
            Field(key="k", type=FieldType.ARRAY_MARSHALER, interface=Ints((1, 2))),
            Field(key="k", type=FieldType.ARRAY_MARSHALER, interface=Ints((1, 2))),
            True,
        ),
        (
            Field(key="k", type=FieldType.ARRAY_MARSHALER, interface=Ints((1, 2))),
            Field(key="k", type=FieldType.ARRAY_MARSHALER, interface=Ints((1, 3))),
            False,
        ),
        (
            Field(key="k", type=FieldType.OBJECT_MARSHALER, interface=Users(10)),
            Field(key="k", type=FieldType.OBJECT_MARSHALER, interface=Users(10)),
            True,
        ),
        (
            Field(key="k", type=FieldType.OBJECT_MARSHALER, interface=Users(10)),
            Field(key="k", type=FieldType.OBJECT_MARSHALER, interface=Users(20)),
            False,
        ),
        (
            Field(key="k", type=FieldType.REFLECT, interface={"a": "b"}),
            Field(key="k", type=FieldType.REFLECT, interface={"a": "b"}),
            True,
        ),
        (
            Field(key="k", type=FieldType.REFLECT, interface={"a": "b"}),
            Field(key="k", type=FieldType.REFLECT, interface={"a": "d"}),
            False,
        ),
        (
            Field(key="k", type=FieldType.ERROR, interface=ValueError("x")),
            Field(key="k", type=FieldType.ERROR, interface=ValueError("x")),
            True,
        ),
    ],
)
def test_equals(a, b, want):
    assert a.equals(b) is want
    assert b.equals(a) is want
    assert (a == b) is want


@pytest.mark.parametrize(
    "key, err, want",
    [
        ("k", TooManyUsers(2), {"k": "2 too many users"}),
        (
            "err",
            MultiError(ValueError("foo"), ValueError("bar"), ValueError("baz")),
            {
                "err": "foo; bar; baz",
                "errCauses": [{"error": "foo"}, {"error": "bar"}, {"error": "baz"}],
            },
        ),
        (
            "e",
            CustomMultierr(),
            {
                "e": "great sadness",
                "eCauses": [
                    {"error": "foo"},
                    {
                        "error": "bar; baz",
                        "errorCauses": [{"error": "bar"}, {"error": "baz"}],
                    },
                ],
            },
        ),
        ("k", _wrapped("failed: egad", ValueError("egad")), {"k": "failed: egad"}),
        (
            "error",
            MultiError(
                _wrapped(
                    "hello: foo; bar",
                    MultiError(ValueError("foo"), ValueError("bar")),
                ),
                ValueError("baz"),
                _wrapped("world: qux", ValueError("qux")),
            ),
            {
                "error": "hello: foo; bar; baz; world: qux",
                "errorCauses": [
                    {"error": "hello: foo; bar"},
                    {"error": "baz"},
                    {"error": "world: qux"},
                ],
            },
        ),
        (
            "e",
            ExceptionGroup("boom", [ValueError("a"), ValueError("b")]),
            {
                "e": "boom (2 sub-exceptions)",
                "eCauses": [{"error": "a"}, {"error": "b"}],
            },
        ),
        ("k", RichError("failed"), {"k": "failed", "kVerbose": "failed\nwith stack"}),
    ],
)
def test_error_encoding(key, err, want):
    enc = MapObjectEncoder()
    Field(key=key, type=FieldType.ERROR, interface=err).add_to(enc)
    assert enc.fields == want


def test_rich_error_support():
    enc = MapObjectEncoder()
    Field(
        key="k", type=FieldType.ERROR, interface=_wrapped("failed: egad", ValueError("egad"))
    ).add_to(enc)
    assert enc.fields["k"] == "failed: egad"


def test_encode_error_panic_raises_value_error():
    enc = MapObjectEncoder()
    with pytest.raises(ValueError, match="PANIC=panic in Error"):
        encode_error("k", ErrObj(kind=1), enc)
    assert enc.fields == {}


def test_encode_error_none():
    enc = MapObjectEncoder()
    encode_error("k", None, enc)
    assert enc.fields == {"k": "<nil>"}