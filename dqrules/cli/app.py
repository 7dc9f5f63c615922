"""Cyclopts application and command routing for the dqrules CLI.

Commands:
- validate: Run a rule collection over dataset files
- check-rules: Check rule files without running them
- evaluate: Evaluate a formula against a sample row
- list-rule-types: List the rule catalog
- list-formats: List dataset and report formats
"""

from cyclopts import App

from dqrules.cli import commands

app = App(
    name="dqrules",
    help="Rule-based data quality validation",
    version="0.1.0",
)

app.command(commands.validate)
app.command(commands.check_rules, name="check-rules")
app.command(commands.evaluate)
app.command(commands.list_rule_types, name="list-rule-types")
app.command(commands.list_formats, name="list-formats")
