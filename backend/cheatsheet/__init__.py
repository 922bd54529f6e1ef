"""
Flask cheat sheet package.

Avoid side effects here: no network, DB, or logging setup.

Run the site with:

    flask --app cheatsheet.main:create_app run

In code/tests you can just ``from cheatsheet.main import create_app``.
"""

__all__ = ["create_app"]


def create_app(*args, **kwargs):
    from .main import create_app as _create_app

    return _create_app(*args, **kwargs)
