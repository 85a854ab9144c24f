"""BST Lab - an interactive binary search tree editor."""

__version__ = "1.0.0"
__app_id__ = "io.github.bstlab.BSTLab"
