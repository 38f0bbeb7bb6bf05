"""Command line interface for VocabTrans."""
