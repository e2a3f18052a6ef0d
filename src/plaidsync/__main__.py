from plaidsync.ui.cli import run

run()
