# firmware/io.py
from __future__ import annotations
from pathlib import Path
from typing import List, Optional

from .block import BLOCK_SIZE, Block, parse_container, serialize_container
from .map import USER_SCRIPT, USER_SCRIPT_BLOCK_PAYLOAD, USER_SCRIPT_BLOCKS
from .merge import filter_region, merge_blocks, split_region
from .script import build_cleared_image, build_script_image, derive_name
from .validate import validate_container


def _assemble(region_image: bytes, base: Optional[bytes]) -> List[Block]:
    base_blocks = parse_container(base) if base else []
    kept = filter_region(base_blocks, USER_SCRIPT.start, USER_SCRIPT.end)
    script_blocks = split_region(region_image, USER_SCRIPT.start, USER_SCRIPT_BLOCK_PAYLOAD)
    merged = merge_blocks(kept, script_blocks)
    validate_container(merged, USER_SCRIPT.start, USER_SCRIPT.end, USER_SCRIPT_BLOCKS)
    return merged


# ---- Высокоуровневые операции ----
def build_uf2(script: bytes, base: Optional[bytes] = None, name: Optional[str] = None) -> bytes:
    """
    Вшить скрипт в регион USERSCRIPT базового UF2.
    Без base получается UF2 только из 64 блоков региона.
    name=None - имя берём из первой строки '---имя'.
    """
    if name is None:
        name = derive_name(script)
    return serialize_container(_assemble(build_script_image(script, name), base))


def clear_uf2(base: Optional[bytes] = None) -> bytes:
    return serialize_container(_assemble(build_cleared_image(), base))


def _result(out_path: Path, data: bytes, base_path: Optional[Path]) -> dict:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    return {
        "bytes": len(data),
        "blocks": len(data) // BLOCK_SIZE,
        "out": str(out_path),
        "base": str(base_path) if base_path else None,
    }


def build_uf2_file(script_path: Path, out_path: Path,
                   base_path: Optional[Path] = None, name: Optional[str] = None) -> dict:
    script_path = Path(script_path)
    script = script_path.read_bytes()
    base = Path(base_path).read_bytes() if base_path else None
    if name is None:
        name = derive_name(script)
    data = build_uf2(script, base, name)
    result = _result(Path(out_path), data, base_path)
    result.update({"source": str(script_path), "name": name, "script_bytes": len(script)})
    return result


def clear_uf2_file(out_path: Path, base_path: Optional[Path] = None) -> dict:
    base = Path(base_path).read_bytes() if base_path else None
    return _result(Path(out_path), clear_uf2(base), base_path)
