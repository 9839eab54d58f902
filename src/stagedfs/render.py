"""Rich rendering of staged trees."""

from __future__ import annotations

from rich.tree import Tree

from stagedfs.descriptor import Descriptor
from stagedfs.fs import Fs


def _label(descriptor: Descriptor) -> str:
    if descriptor.is_directory:
        return f"[bold blue]{descriptor.name}/[/bold blue]"
    return descriptor.name


def _add_children(branch: Tree, descriptor: Descriptor, depth: int) -> None:
    if depth == 0:
        return
    for child in descriptor.walk(recursive=False):
        node = branch.add(_label(child))
        if child.is_directory:
            _add_children(node, child, depth - 1 if depth > 0 else -1)


def build_tree(fs: Fs, depth: int = -1) -> Tree:
    """Build a rich Tree of an Fs.

    Args:
        fs: The Fs to render.
        depth: Levels to show below the root, -1 for all.

    Returns:
        Tree labelled with the Fs root path.
    """
    tree = Tree(f"[bold]{fs.absolute_path}[/bold]", guide_style="dim")
    _add_children(tree, fs.root, depth)
    return tree
