"""Split PLY point clouds into memo-sized chunks and merge them back into groups."""

__version__ = "0.1.0"
