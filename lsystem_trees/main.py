"""Command line tool: expand, build, preview and animate L-system trees.

Examples:
  python -m lsystem_trees generate --preset "Preset 1" --iterations 3
  python -m lsystem_trees build tree.vtk --preset Default --mode skinned --skeleton bones.npz
  python -m lsystem_trees render tree.png --config my_tree.json
  python -m lsystem_trees render tree.png --mode skinned --interactive
  python -m lsystem_trees animate frames.npy --preset dichotomous --frames 120
  python -m lsystem_trees presets --export out/
"""
import argparse
import logging
import os
import sys
from dataclasses import replace
from typing import List, Optional

import numpy as np
from tqdm import tqdm

from lsystem_trees.config import BuildMode, TreeConfig, config_from_preset, load_config
from lsystem_trees.errors import TreeBuildError
from lsystem_trees.l_system import LSystemGenerator
from lsystem_trees.logging_config import setup_logging
from lsystem_trees.noise import TimeNoise
from lsystem_trees.preset import LSYSTEM_PRESETS
from lsystem_trees.tree_builder import TreeBuilder, evaluate_sway

logger = logging.getLogger(__name__)


def _load(args) -> TreeConfig:
    overrides = {}
    for name in ("start_radius", "radius_reduction", "branch_length", "angle"):
        value = getattr(args, name, None)
        if value is not None:
            overrides[name] = value
    if getattr(args, "mode", None):
        overrides["mode"] = args.mode

    if args.config:
        cfg = load_config(args.config)
        if overrides:
            cfg = _override(cfg, overrides)
    else:
        cfg = config_from_preset(args.preset, **overrides)
    if args.iterations is not None:
        cfg.iterations = args.iterations
    return cfg


def _override(cfg: TreeConfig, overrides) -> TreeConfig:
    if "mode" in overrides:
        overrides = dict(overrides, mode=BuildMode(overrides["mode"]))
    cfg.tree = replace(cfg.tree, **overrides)
    cfg.tree.validate()
    return cfg


def _build(cfg: TreeConfig, builder: Optional[TreeBuilder] = None):
    grammar = LSystemGenerator(cfg.rules)
    builder = builder or TreeBuilder()
    return builder.build_from_grammar(grammar, cfg.axiom, cfg.iterations, cfg.tree)


def cmd_generate(args) -> None:
    cfg = _load(args)
    lstring = LSystemGenerator(cfg.rules).generate(cfg.axiom, cfg.iterations)
    if args.length:
        print(len(lstring))
    else:
        print(lstring)


def cmd_build(args) -> None:
    from lsystem_trees.visualize import save_mesh, save_skeleton

    cfg = _load(args)
    if args.skeleton and cfg.tree.mode is not BuildMode.SKINNED:
        raise TreeBuildError("--skeleton requires --mode skinned")
    asset = _build(cfg)
    save_mesh(asset.mesh, args.output)
    if args.skeleton:
        save_skeleton(asset.skeleton, args.skeleton)
    print(f"{cfg.name}: {asset.n_segments} segments, {asset.n_leaves} leaves, "
          f"{asset.mesh.n_vertices} vertices, {asset.mesh.n_triangles} triangles")


def cmd_render(args) -> None:
    import matplotlib.pyplot as plt

    from lsystem_trees import visualize

    cfg = _load(args)
    asset = _build(cfg)
    fig = visualize.render(
        asset.mesh, elev=args.elev, azim=args.azim, save_path=args.output, show=args.show
    )
    plt.close(fig)
    if args.interactive:
        visualize.plot_tree(asset.mesh, asset.skeleton)


def cmd_animate(args) -> None:
    cfg = _load(args)
    asset = _build(cfg)
    noise = TimeNoise(seed=args.seed) if args.noise else None

    frames = []
    for frame in tqdm(range(args.frames), desc="Frames"):
        t = frame / args.fps
        wind = cfg.wind
        if noise is not None:
            wind = wind.with_noise(noise(t))
        sway = evaluate_sway(asset, t, wind)
        if asset.mode is BuildMode.SKINNED:
            frames.append(asset.skeleton.skin(asset.mesh, sway).astype(np.float32))
        else:
            frames.append(asset.mesh.positions + sway)

    os.makedirs(os.path.dirname(os.path.abspath(args.output)) or ".", exist_ok=True)
    np.save(args.output, np.stack(frames))
    print(f"Saved {len(frames)} frames of {asset.mesh.n_vertices} vertices to {args.output}")


def cmd_presets(args) -> None:
    if not args.export:
        for name, preset in LSYSTEM_PRESETS.items():
            print(f"{name:16s} {preset['axiom']:10s} {preset['description']}")
        return

    from lsystem_trees.visualize import save_mesh

    builder = TreeBuilder()
    for name in tqdm(LSYSTEM_PRESETS, desc="Presets"):
        asset = _build(config_from_preset(name), builder)
        filename = name.lower().replace(" ", "_") + args.format
        save_mesh(asset.mesh, os.path.join(args.export, filename))
    builder.clear()


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lsystem-trees",
        description="Generate 3D trees from L-system grammars.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    p.add_argument('--log_file', default=None, help='Also write the log to this file')
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_tree_args(sp):
        src = sp.add_mutually_exclusive_group()
        src.add_argument('--preset', default='Default', choices=sorted(LSYSTEM_PRESETS),
                         help='Built-in grammar (default: Default)')
        src.add_argument('--config', default=None, help='JSON tree config')
        sp.add_argument('--iterations', type=int, default=None)
        sp.add_argument('--start_radius', type=float, default=None)
        sp.add_argument('--radius_reduction', type=float, default=None)
        sp.add_argument('--branch_length', type=float, default=None)
        sp.add_argument('--angle', type=float, default=None)
        sp.add_argument('--mode', choices=[m.value for m in BuildMode], default=None)

    pg = sub.add_parser("generate", help="Print the expanded symbol string.")
    add_tree_args(pg)
    pg.add_argument('--length', action='store_true', help='Only print the string length')
    pg.set_defaults(func=cmd_generate)

    pb = sub.add_parser("build", help="Build a tree and save the mesh.")
    add_tree_args(pb)
    pb.add_argument('output', help='Mesh file (.vtk, .vtp, .ply, .stl, .obj)')
    pb.add_argument('--skeleton', default=None, help='Save bones to this .npz (skinned mode)')
    pb.set_defaults(func=cmd_build)

    pr = sub.add_parser("render", help="Save a matplotlib preview of the tree.")
    add_tree_args(pr)
    pr.add_argument('output', help='Image path')
    pr.add_argument('--elev', type=float, default=20)
    pr.add_argument('--azim', type=float, default=45)
    pr.add_argument('--show', action='store_true')
    pr.add_argument('--interactive', action='store_true',
                    help='Also open a pyvista window (bones drawn in skinned mode)')
    pr.set_defaults(func=cmd_render)

    pa = sub.add_parser("animate", help="Evaluate wind sway and save posed vertex positions.")
    add_tree_args(pa)
    pa.add_argument('output', help='.npy file of shape (frames, vertices, 3)')
    pa.add_argument('--frames', type=int, default=60)
    pa.add_argument('--fps', type=float, default=30.0)
    pa.add_argument('--noise', action='store_true', help='Drive the sway phase with Perlin noise')
    pa.add_argument('--seed', type=int, default=None)
    pa.set_defaults(func=cmd_animate)

    pp = sub.add_parser("presets", help="List the built-in presets or export all of them.")
    pp.add_argument('--export', default=None, help='Directory to write one mesh per preset')
    pp.add_argument('--format', default='.vtk', help='Mesh file extension (default: .vtk)')
    pp.set_defaults(func=cmd_presets)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argparser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    try:
        args.func(args)
    except TreeBuildError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
