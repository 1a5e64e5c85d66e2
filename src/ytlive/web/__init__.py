"""HTTP operator surface for ytlive."""
