"""
GameBoard application package.

Layered the same way throughout:

  boardapp/repositories/ : the persisted credential token (pure I/O).
  boardapp/services/     : validation and API calls per domain (auth,
                            posts, comments, games).
  boardapp/render.py     : Jinja2 fragments, autoescaped.
  boardapp/controller.py : ``ViewController``, one method per user intent,
                            writing rendered regions into a ``Page``.

``board_gui.py`` is the integration point: it builds a controller per browser
session and exposes its methods as Flask routes.
"""
