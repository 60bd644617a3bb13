#!/usr/bin/env python3
"""Dump RenderWare .dff models and .txd texture dictionaries.

Usage:
    python -m rw_extractor.dump_rw <input> [-o <output>] [--json] [--tree] [-v]

Examples:
    # Summarize a single model
    python -m rw_extractor.dump_rw player.dff

    # Write JSON for every asset under a directory
    python -m rw_extractor.dump_rw ./models/ --json -o ./json

    # Show the raw chunk tree
    python -m rw_extractor.dump_rw player.txd --tree
"""
import argparse
import json
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .rw_chunks import walk
from .rw_clump import decode_model
from .rw_errors import DecodeError
from .rw_txd import decode_texture_dictionary
from .rw_types import ChunkNode, Clump, TextureDictionary

DECODERS: Dict[str, Callable] = {
    ".dff": decode_model,
    ".txd": decode_texture_dictionary,
}


def describe_clump(clump: Clump) -> List[str]:
    lines = [
        f"Clump (version {clump.version:#x})",
        f"  Atomics = {clump.atomic_count}",
        f"  Lights = {clump.light_count}",
        f"  Cameras = {clump.camera_count}",
        f"  Frames = {len(clump.frames)}",
    ]
    for index, frame in enumerate(clump.frames):
        parent = "none" if frame.is_root else str(frame.parent_index)
        name = frame.name_text or "-"
        pos = ", ".join(f"{v:.3f}" for v in frame.position)
        bones = f" bones={len(frame.hanim.bones)}" if frame.hanim and frame.hanim.bones else ""
        lines.append(f"    [{index}] {name} parent={parent} position=({pos}){bones}")

    lines.append(f"  Geometries = {len(clump.geometries)}")
    for index, geometry in enumerate(clump.geometries):
        lines.append(
            f"    [{index}] vertices={geometry.vertex_count} "
            f"triangles={geometry.triangle_count} uv_sets={len(geometry.uv_sets)} "
            f"flags={geometry.flags.value:#x}"
        )
        for material in geometry.materials:
            names = ", ".join(t.name_text for t in material.textures) or "-"
            lines.append(f"      material color={material.color} textures={names}")
    return lines


def describe_txd(txd: TextureDictionary) -> List[str]:
    lines = [
        f"Texture Dictionary (version {txd.version:#x})",
        f"  Device = {txd.device_id}",
        f"  Textures = {len(txd.textures)}",
    ]
    for texture in txd.textures:
        lines.append(
            f"    {texture.name_text} ({texture.alpha_name_text or '-'}) "
            f"{texture.width}x{texture.height} depth={texture.depth} "
            f"format={texture.raster_format:#x} mips={texture.mipmap_count}"
        )
    return lines


def describe_tree(nodes: List[ChunkNode]) -> List[str]:
    lines = []
    for node in nodes:
        lines.append(
            f"{'  ' * node.depth}{node.header.tag_name} "
            f"offset={node.offset:#x} size={node.header.body_size} "
            f"version={node.header.version:#x}"
        )
        lines.extend(describe_tree(node.children))
    return lines


def dump_file(path: Path, as_json: bool = False, tree: bool = False,
              output_dir: Optional[Path] = None, verbose: bool = False) -> bool:
    """Decode one file and print or write the result.

    Returns:
        True if the file decoded, False otherwise
    """
    decoder = DECODERS.get(path.suffix.lower())
    if decoder is None and not tree:
        print(f"Failed: {path} - unsupported extension {path.suffix!r}", file=sys.stderr)
        return False

    try:
        data = path.read_bytes()
        if tree:
            nodes = walk(data)
            result = [n.to_dict() for n in nodes]
            lines = describe_tree(nodes)
        else:
            decoded = decoder(data)
            result = decoded.to_dict()
            if isinstance(decoded, Clump):
                lines = describe_clump(decoded)
            else:
                lines = describe_txd(decoded)
    except (OSError, DecodeError) as e:
        print(f"Failed: {path} - {e}", file=sys.stderr)
        return False

    if as_json:
        text = json.dumps(result, indent=2)
        if output_dir is not None:
            output_file = output_dir / f"{path.stem}.json"
            output_file.write_text(text)
            if verbose:
                print(f"Dumped: {path} -> {output_file}")
        else:
            print(text)
    else:
        print(f"File: {path}")
        print("\n".join(lines))
    return True


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Dump RenderWare .dff models and .txd texture dictionaries"
    )
    parser.add_argument(
        "input",
        help="Input .dff/.txd file or directory containing them",
    )
    parser.add_argument(
        "-o", "--output",
        help="Output directory for JSON files (implies --json)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit decoded records as JSON",
    )
    parser.add_argument(
        "--tree",
        action="store_true",
        help="List the raw chunk tree instead of decoding",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )

    args = parser.parse_args(argv)

    # Collect input files
    input_path = Path(args.input)
    if input_path.is_file():
        files = [input_path]
    elif input_path.is_dir():
        files = sorted(
            p for p in input_path.glob("**/*")
            if p.is_file() and p.suffix.lower() in DECODERS
        )
        if not files:
            print(f"No .dff or .txd files found in {input_path}", file=sys.stderr)
            return 1
    else:
        print(f"Input not found: {args.input}", file=sys.stderr)
        return 1

    output_dir = None
    if args.output:
        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)

    # -o implies --json
    as_json = args.json or output_dir is not None

    success_count = 0
    fail_count = 0

    for path in files:
        if args.verbose:
            print(f"Decoding: {path}", file=sys.stderr)
        if dump_file(path, as_json=as_json, tree=args.tree,
                     output_dir=output_dir, verbose=args.verbose):
            success_count += 1
        else:
            fail_count += 1

    # Summary
    if len(files) > 1:
        total = success_count + fail_count
        print(f"\nDecoded {success_count}/{total} files")

    return 0 if fail_count == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
