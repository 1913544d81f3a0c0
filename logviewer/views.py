"""
HTML rendering for the log viewer pages.

Every function is pure: it takes already-resolved data and returns markup.
Autoescaping is on, so file names and log text are always escaped.
"""

from pathlib import Path
from typing import Sequence

from fastapi.templating import Jinja2Templates

from logviewer.logs import LogCategory

templates_dir = Path(__file__).parent / 'templates'

templates = Jinja2Templates(directory=str(templates_dir))


def _render(template: str, **context) -> str:
    return templates.get_template(template).render(**context)


def _message(title: str, heading: str, message: str, back_url: str = '/', back_text: str = 'Back to Home') -> str:
    return _render(
        'message.html',
        title=title,
        heading=heading,
        message=message,
        back_url=back_url,
        back_text=back_text,
    )


def render_index() -> str:
    return _render('index.html', title='Docker Logs Viewer')


def render_log_list(category: LogCategory, files: Sequence[str]) -> str:
    """Listing page; an empty sequence renders the 'no logs' message"""
    category = LogCategory(category)
    return _render('log_list.html', title=category.label, category=category, files=list(files))


def render_log_file(category: LogCategory, filename: str, content: str) -> str:
    category = LogCategory(category)
    return _render(
        'log_file.html',
        title=f'Log File: {filename}',
        category=category,
        filename=filename,
        content=content,
    )


def render_bad_request(category: LogCategory, message: str) -> str:
    category = LogCategory(category)
    return _message('Bad Request', 'Bad Request', message,
                    back_url=f'/logs/{category.value}', back_text=f'Back to {category.label}')


def render_log_not_found(category: LogCategory, filename: str) -> str:
    category = LogCategory(category)
    return _message('Log Not Found', 'Log Not Found', f'The log file {filename} does not exist.',
                    back_url=f'/logs/{category.value}', back_text=f'Back to {category.label}')


def render_read_failure(category: LogCategory) -> str:
    category = LogCategory(category)
    return _message('Error', 'Error', 'Failed to read log file.',
                    back_url=f'/logs/{category.value}', back_text=f'Back to {category.label}')


def render_not_found() -> str:
    return _message('Page Not Found', 'Page Not Found', 'The page you are looking for does not exist.')


def render_error(message: str = 'Internal Server Error') -> str:
    return _message('Error', 'Something went wrong', message)
