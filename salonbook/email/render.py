from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

_loader = FileSystemLoader(str(Path(__file__).parent / "templates"))
# mensagens são texto puro (SMS e corpo do e-mail)
env = Environment(loader=_loader, autoescape=False, undefined=StrictUndefined, trim_blocks=True)
render = env.get_template  # render("appointment_change.txt").render(ctx)
