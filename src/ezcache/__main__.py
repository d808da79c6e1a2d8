from ezcache.cli.app import app

app(prog_name="ezcache")
