# azlsp

Building blocks for editor tooling around Azure resource definitions.

- **Schema types** (`azlsp.schema_types`, `azlsp.resource_types`): these cover
  built-in, string literal, array, union, object, discriminated object, resource
  and resource function types. They are read from the numbered type-list JSON
  format.
  - `validate(body, path)` checks a request body and returns a list of
    `ValidationError`. The list is empty when the body is valid.
  - `get_write_only(body)` strips a response body down to the properties a
    client may send.
- **Schema index and loader** (`azlsp.index`, `azlsp.loader`): `SchemaIndex`
  maps resource types and API versions to locations in type files.
  `SchemaLoader` answers lookups against a schema directory.
- **Document store** (`azlsp.documents`, `azlsp.filesystem`): `Filesystem` keeps
  documents in memory on top of the real file system, which it only reads. It
  applies LSP-style edits, where columns count UTF-16 code units. It also tracks
  which documents are open and their versions.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Validating a body

```python
from azlsp.schema_types import ObjectType

obj = ObjectType.from_json({
    "Name": "Widget",
    "Properties": {"location": {"Flags": 1}},
})

for error in obj.validate({"colour": "red"}, ""):
    print(error.path, "-", error)
```

This reports two errors:

- `.colour` is not a known property.
- The required `.location` is missing.

When the path is `""`, a missing required `name` is not reported.

A whole type file is read with `Schema.loads(text)` or `Schema.from_json(data)`.
Both resolve the index-based references between entries. For example,
`ObjectType.properties[...].type.type` then holds the referenced type.
Unknown keys in a type entry raise `ValueError`.

## Looking up definitions

`SchemaLoader(root)` expects a directory that holds an `index.json` of this
form:

```json
{
  "Resources": {
    "Microsoft.Example/widgets@2021-01-01": {"RelativePath": "example/types.json", "Index": 3}
  },
  "Functions": {
    "Microsoft.Example/widgets": {"2021-01-01": [{"RelativePath": "example/types.json", "Index": 7}]}
  }
}
```

Each `RelativePath` is read relative to `root`. Type files are loaded the first
time a definition is asked for, and the loaded result is kept.

```python
from azlsp.loader import SchemaLoader

loader = SchemaLoader("schemas")
versions = loader.get_api_versions("microsoft.example/widgets")  # sorted; case-insensitive
resource = loader.get_resource_definition("Microsoft.Example/widgets", "2021-01-01")
same = loader.get_resource_definition_by_resource_type("Microsoft.Example/widgets@2021-01-01")
functions = loader.list_resource_functions("Microsoft.Example/widgets", "2021-01-01")
action = loader.get_resource_function("Microsoft.Example/widgets", "2021-01-01", "listKeys")
```

The loader returns or raises as follows:

- `get_schema()` returns `None` if the index cannot be read or parsed. In that
  case `get_api_versions` returns an empty list, and the other lookups raise
  `RuntimeError`.
- `get_resource_definition` raises `LookupError` for an unknown type or version.
- `get_resource_definition_by_resource_type` raises `ValueError` unless its input
  contains exactly one `@`.
- `get_resource_function` returns `None` when no function of that name loads.

## Working with documents

```python
from azlsp.documents import DocumentChange, DocumentHandler, Pos, Range
from azlsp.filesystem import Filesystem

fs = Filesystem()
dh = DocumentHandler.from_path("/tmp/main.tf")
fs.create_and_open_document(dh, "terraform", b"hello world")

edit = DocumentChange("terraform", Range(Pos(0, 6), Pos(0, 11)))
fs.change_document(DocumentHandler.from_path("/tmp/main.tf"), [edit])

doc = fs.get_document(dh)
print(doc.text())  # b"hello terraform"
```

A `DocumentChange` without a range replaces the whole text. Changes are applied
in order. After the changes, the document's version becomes the `version` of the
handler passed to `change_document`.

The direct-access methods look in memory first and then fall back to the real
file system:

- `read_file`, `open` and `stat` read a single path.
- `read_dir` lists in-memory names first, then file-system names not already
  listed.
- `has_open_files(dir)` reports whether any open document lies in that
  directory.

Errors are raised as exceptions. All of them derive from `DocumentError`:

- `UnknownDocumentError`: the store has no such document.
- `DocumentNotOpenError`: the document exists but is not open.
- `MetadataAlreadyExistsError`: the document was created twice.
- `InvalidPosError`: a position is past the last line. This is also a
  `ValueError`.

## Command line

```
azlsp version
azlsp version -json
```

The first form prints the package version together with the platform, Python
version and implementation. `-json` prints the same information as a JSON
object. `azlsp version -h` shows the options.

## What it does not do

- `azlsp` has no language server: it does not run a server over stdio or TCP,
  and it speaks no JSON-RPC.
- It offers no completion, hover or other editor features.
- It ships no schema data. `SchemaLoader` needs a schema directory supplied by
  the caller.