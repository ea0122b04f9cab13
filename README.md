# terralsp

Building blocks for a Terraform language server:

- `terralsp.filesystem`: an in-memory document store layered over the real,
  read-only filesystem
- `terralsp.position`: conversion of LSP positions (line, UTF-16 column) to
  byte offsets
- `terralsp.document`: documents, their metadata and the edits a client sends
- `terralsp.context`: a request context that carries per-session services and
  can be cancelled, including on signals
- `terralsp.cli`: the `terralsp` command with a `version` subcommand

It has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
terralsp version
terralsp version -json
```

The first form prints the version, the platform (`os/arch`), the Python
version and the Python implementation as plain text. The second prints the
same details as an indented JSON object with the keys `version`, `python`,
`os`, `arch` and `compiler`; empty fields are left out.

`terralsp -version` (or `-v`, `--version`) runs the version command too.
`terralsp -h` prints the list of commands and exits with status 0; no command
prints it and exits with 1; an unknown command exits with 127. An unknown flag
to `version` prints its help and the parse error and exits with 1.

## Working with documents

A handler is any object with `uri`, `full_path`, `dir` and `filename`
attributes (see `terralsp.document.DocumentHandler`); to change a document it
also needs `version` (`VersionedDocumentHandler`).

```python
import os
from dataclasses import dataclass

from terralsp.document import DocumentChange, path_to_uri
from terralsp.filesystem import Filesystem
from terralsp.position import Pos, Range


@dataclass
class Handler:
    full_path: str
    version: int = 0

    @property
    def uri(self):
        return path_to_uri(self.full_path)

    @property
    def dir(self):
        return os.path.dirname(self.full_path)

    @property
    def filename(self):
        return os.path.basename(self.full_path)


fs = Filesystem()
handler = Handler("/work/main.tf")
fs.create_and_open_document(handler, "terraform", b"hello world")

handler.version = 1
fs.change_document(handler, [
    DocumentChange("terraform", Range(Pos(0, 6), Pos(0, 11))),
])

doc = fs.get_document(handler)
doc.text()      # b"hello terraform"
doc.version     # 1
doc.is_open     # True
```

A `DocumentChange` without a range replaces the whole text. With a `Range`,
only that span is replaced; columns count UTF-16 code units as LSP does.
Changes are applied in order, and an empty list of changes does nothing.

`Document` also exposes `lines`, `language_id`, `uri`, `full_path`, `dir` and
`filename`. Two documents compare equal when their URI, open state, version
and text all match.

`close_and_remove_document` drops an open document and its metadata.
`has_open_files(dir_path)` tells whether any document directly in a directory
is open.

### Reading files

`read_file`, `read_dir`, `open` and `stat` look in memory first and fall back
to the operating system, which is never written to. `read_dir` returns
`DirEntry` values (`name`, `is_dir`, `size`): in-memory entries first, then
disk entries whose names are not already listed. Missing files raise
`FileNotFoundError`.

### Positions

```python
from terralsp.position import Pos, byte_offset_for_pos, make_source_lines

lines = make_source_lines("main.tf", "hello 𐐀 world".encode())
byte_offset_for_pos(lines, Pos(0, 8))   # 10
```

A line number past the end raises `InvalidPosError`; a column past the end of
a line maps to the end of that line.

### Errors

`terralsp.errors` defines `DocumentNotOpenError`, `UnknownDocumentError`
(also a `LookupError`), `MetadataAlreadyExistsError` and `InvalidPosError`
(also a `ValueError`).

## Request context

```python
import logging
import signal

from terralsp.context import (
    Context,
    language_server_version,
    with_language_server_version,
    with_signal_cancel,
)

ctx = with_language_server_version(Context(), "0.1.0")
language_server_version(ctx)   # "0.1.0"; None when unset

ctx, stop = with_signal_cancel(ctx, logging.getLogger(), signal.SIGINT)
ctx.wait(1.0)   # True once cancelled
stop()          # restores the previous handlers and cancels
```

`Context.with_value` returns a child context carrying one more value;
`Context.value` finds the nearest one. `cancel` cancels a context and every
context derived from it; `cancelled` and `wait` report it.

Helpers attach and look up the document storage, diagnostics notifier,
client caller, client notifier and telemetry sender (`with_document_storage` /
`document_storage`, and so on). A lookup for one that was never attached
raises `MissingContextError`. The client caller and the client notifier share
one slot.

## What this package does not do

It does not run a language server: there is no `serve` command, no JSON-RPC
transport over stdio or TCP, and no request handlers, diagnostics or
completion. The context helpers store whatever objects the caller provides for
those services.