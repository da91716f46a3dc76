"""Narinfo text format: one metadata record per store path."""

from __future__ import annotations

import posixpath

from nsync.errors import SchemaError
from nsync.store.models import PathRecord

VIRTUAL_URL = "virtual_generated"
NARINFO_SUFFIX = ".narinfo"


def hash_part(path: str) -> str:
    """Return the content hash of a store path (``/nix/store/<hash>-<name>``)."""
    name = posixpath.basename(path.rstrip("/"))
    digest, sep, _ = name.partition("-")
    if not digest or not sep:
        raise SchemaError(
            "Invalid nix store path", f"Could not get hash from item path: {path!r}"
        )
    return digest


def narinfo_filename(path: str) -> str:
    return f"{hash_part(path)}{NARINFO_SUFFIX}"


def render_narinfo(record: PathRecord) -> str:
    """Render a record in the bit-exact text layout nix reads from file stores.

    The record's NAR is described as uncompressed, so FileHash/FileSize
    mirror NarHash/NarSize. A record without a URL gets the virtual
    placeholder; such entries only describe paths already present on the
    receiving side.
    """
    references = " ".join(posixpath.basename(r) for r in record.references)
    lines = [
        f"StorePath: {record.path}",
        f"URL: {record.url or VIRTUAL_URL}",
        "Compression: none",
        f"FileHash: {record.nar_hash}",
        f"FileSize: {record.nar_size}",
        f"NarHash: {record.nar_hash}",
        f"NarSize: {record.nar_size}",
        f"References: {references}",
    ]
    if record.signatures:
        lines.append(f"Sig: {' '.join(record.signatures)}")
    return "\n".join(lines) + "\n"


def parse_narinfo(text: str) -> PathRecord:
    """Parse narinfo text back into a PathRecord.

    Reference and deriver names are expanded to full paths using the store
    directory of ``StorePath``. Repeated ``Sig`` lines accumulate.
    """
    fields: dict[str, str] = {}
    signatures: list[str] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        key, sep, value = line.partition(":")
        if not sep:
            raise SchemaError("Malformed narinfo file", f"Line without a key: {line!r}")
        key, value = key.strip(), value.strip()
        if key == "Sig":
            signatures.extend(value.split())
        else:
            fields[key] = value

    try:
        store_path = fields["StorePath"]
        nar_hash = fields["NarHash"]
        nar_size = int(fields["NarSize"])
    except KeyError as e:
        raise SchemaError(
            "Malformed narinfo file", f"Missing required field {e.args[0]}"
        ) from e
    except ValueError as e:
        raise SchemaError(
            "Malformed narinfo file", f"NarSize is not an integer: {fields['NarSize']!r}"
        ) from e

    store_dir = posixpath.dirname(store_path)
    references = tuple(
        posixpath.join(store_dir, name) for name in fields.get("References", "").split()
    )
    deriver = fields.get("Deriver")
    return PathRecord(
        path=store_path,
        nar_hash=nar_hash,
        nar_size=nar_size,
        references=references,
        url=fields.get("URL"),
        signatures=tuple(signatures) or None,
        deriver=posixpath.join(store_dir, deriver) if deriver else None,
        ca=fields.get("CA"),
    )
