# zapcore

A small, dependency-free core for structured, leveled logging. It provides
the following pieces:

- **Levels** (`zapcore.level`): `Level`, with `Level.DEBUG` through
  `Level.FATAL` and `Level.INVALID`. `parse_level` reads the lowercase or
  all-caps name of a level, and raises `ValueError` for text it does not
  recognize. `level_of` reports the lowest level an enabler allows.
  `lowercase_color_string` and `capital_color_string` return level names
  wrapped in terminal color codes.
- **Fields** (`zapcore.field`): `Field` and `FieldType` hold typed key/value
  pairs. `Field.add_to` writes a field into an encoder, and `add_fields`
  writes a sequence of them. Errors are expanded by `encode_error`: error
  groups gain a `<key>Causes` array.
- **Marshalers** (`zapcore.marshaler`): the `ObjectMarshaler` and
  `ArrayMarshaler` protocols, and the `ObjectMarshalerFunc` and
  `ArrayMarshalerFunc` adapters for plain callables.
- **Entries** (`zapcore.entry`):
  - `Entry` and `EntryCaller` describe a log message and its call site.
  - `CheckedEntry` collects the cores that agreed to log an entry.
  - `CheckWriteAction` gives the built-in actions that run after a write.
    `WRITE_THEN_PANIC` raises `PanicError`, `WRITE_THEN_GOEXIT` raises
    `GoexitError`, and `WRITE_THEN_FATAL` calls `sys.exit(1)`.
- **Encoders**:
  - `JSONEncoder` / `new_json_encoder` (`zapcore.json_encoder`) produce
    compact JSON lines.
  - `ConsoleEncoder` / `new_console_encoder` (`zapcore.console_encoder`)
    write the time, level, name, caller and message as separated plain text,
    followed by the context as JSON. The separator defaults to a tab.
  - `MapObjectEncoder` and `SliceArrayEncoder` (`zapcore.memory_encoder`)
    collect output into dicts and lists, which makes it easy to inspect.
- **Configuration** (`zapcore.encoder`): `EncoderConfig` holds the keys and
  value encoders. It also provides the stock level, time, duration, caller
  and name encoders.
- **Cores** (`zapcore.core`):
  - `new_core` returns an `IOCore`, which encodes entries and writes them to
    a stream.
  - `new_nop_core` returns a `NopCore`, which discards everything.
  - `register_hooks` returns a `HookedCore`, which runs callbacks for each
    logged entry.
  - `new_increase_level_core` returns a `LevelFilterCore`, which raises a
    core's minimum level. It raises `ValueError` if the new level would
    enable levels that the core does not.

## Installation

```
pip install .
```

## Example

```python
import io
from datetime import datetime, timezone

from zapcore.core import new_core
from zapcore.encoder import (
    EncoderConfig,
    iso8601_time_encoder,
    lowercase_level_encoder,
    seconds_duration_encoder,
    short_caller_encoder,
)
from zapcore.entry import Entry
from zapcore.field import Field, FieldType
from zapcore.json_encoder import new_json_encoder
from zapcore.level import Level

cfg = EncoderConfig(
    message_key="msg",
    level_key="level",
    time_key="ts",
    encode_level=lowercase_level_encoder,
    encode_time=iso8601_time_encoder,
    encode_duration=seconds_duration_encoder,
    encode_caller=short_caller_encoder,
)

out = io.StringIO()
core = new_core(new_json_encoder(cfg), out, Level.INFO)

entry = Entry(level=Level.INFO, time=datetime.now(timezone.utc), message="hello")
checked = core.check(entry, None)
if checked is not None:
    checked.write(Field(key="answer", type=FieldType.INT64, integer=42))

print(out.getvalue())
```

Call `check` before writing an entry. It returns a `CheckedEntry` only when
some core accepts the entry's level. Writing the checked entry sends it to
every core that accepted it, and then runs any hook set with `after`.

A checked entry can be written only once. A second write is reported on its
`error_output`, if one is set, and is otherwise ignored. Errors raised by
cores during a write are also reported on `error_output`.

If an entry's level is above `Level.ERROR`, `IOCore` syncs its output after
writing. It calls the stream's `sync()` method, or `flush()` if there is no
`sync()`.

## Configuring from text

The following helpers build encoders from configuration values such as
`"iso8601"`, `"capital"` or `"string"`. Unknown names fall back to the
default encoder for each kind.

- `encoder_config_from_dict` takes camelCase keys, the same keys that JSON or
  YAML configuration would use.
- `level_encoder_from_text`
- `time_encoder_from_text`
- `time_encoder_from_config`, which also accepts `{"layout": ...}`.
- `time_encoder_from_json`
- `duration_encoder_from_text`
- `caller_encoder_from_text`
- `name_encoder_from_text`

`format_time_layout` formats a datetime from a reference-time layout such as
`2006-01-02T15:04:05Z07:00`. `format_duration` renders durations in forms
such as `1m0s` or `1.5µs`.

## What is not included

This package covers only the low-level pieces. It does not include:

- a high-level logger with `info`/`error`-style methods;
- constructors for building fields;
- sampling;
- opening files or other outputs by name.

You build `Entry` and `Field` objects yourself, and you pass a writable
stream to `new_core`.

## Running the tests

```
pip install .[test]
pytest
```