from iam_spine.cli.app import app

app()
