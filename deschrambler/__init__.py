"""Ancestral adjacency inference and APCF construction."""

__all__ = [
    "InferenceConfig",
    "PathBuilderConfig",
    "infer_adjacencies",
    "build_fragments",
    "parse_newick",
    "reroot_at_ancestor",
]


def __getattr__(name):
    if name in {"InferenceConfig", "PathBuilderConfig"}:
        from .config import InferenceConfig, PathBuilderConfig

        return locals()[name]
    if name == "infer_adjacencies":
        from .inference import infer_adjacencies

        return infer_adjacencies
    if name == "build_fragments":
        from .path_builder import build_fragments

        return build_fragments
    if name == "parse_newick":
        from .parser import parse_newick

        return parse_newick
    if name == "reroot_at_ancestor":
        from .rooting import reroot_at_ancestor

        return reroot_at_ancestor
    raise AttributeError(name)
