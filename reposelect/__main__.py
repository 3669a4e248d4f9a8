from reposelect.cli import app

app()
