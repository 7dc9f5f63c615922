"""CLI interface for the dqrules validation engine.

This package provides command-line access to rule validation: running a
rule collection over dataset files, checking rule files, listing the rule
catalog and evaluating formulas against a sample row.
"""
