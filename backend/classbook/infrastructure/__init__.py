"""Infrastructure implementations of the repository interfaces."""
