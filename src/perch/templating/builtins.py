"""Templates perch ships so a bare pages tree renders out of the box.

They are served by a ``DictLoader`` placed last in the loader chain:
a ``_layouts/main.html`` or ``_errors/404.html`` in the pages directory
always wins.
"""

DEFAULT_LAYOUT = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  {% if csrf_token_value %}<meta name="csrf-token" content="{{ csrf_token_value }}">{% end %}
  <title>{{ title }}</title>
</head>
<body>
  <main{% if content_id %} id="{{ content_id }}"{% end %}>
    {% block content %}{% endblock %}
  </main>
</body>
</html>
"""

NOT_FOUND_PAGE = """\
<h1>Page not found</h1>
<p>Nothing lives at <code>{{ request.path }}</code>.</p>
<p><a href="/">Back to the home page</a></p>
"""

BUILTIN_TEMPLATES: dict[str, str] = {
    "_layouts/main.html": DEFAULT_LAYOUT,
    "_errors/404.html": NOT_FOUND_PAGE,
}
