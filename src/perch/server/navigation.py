"""Zero-refresh navigation — the client half and partial detection.

Full documents carry a small script that intercepts same-origin link
clicks and form posts, fetches the target as a partial, and swaps the
envelope's ``html`` into the content container.  The server side only
needs :func:`is_partial_request`.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perch.config import AppConfig
    from perch.http.request import Request

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})

NAVIGATION_SCRIPT = """\
(function () {
  "use strict";
  var cfg = __PERCH_NAV_CONFIG__;

  function container() { return document.querySelector(cfg.selector); }

  function csrfToken() {
    var meta = document.querySelector('meta[name="csrf-token"]');
    return meta ? meta.getAttribute("content") : null;
  }

  function sameOrigin(url) {
    try { return new URL(url, location.href).origin === location.origin; }
    catch (e) { return false; }
  }

  function apply(env, url, push) {
    if (env.redirect) { return navigate(env.redirect, null, true); }
    var target = container();
    if (!target) { location.href = url; return; }
    target.innerHTML = env.html;
    if (env.title) { document.title = env.title; }
    if (push) { history.pushState({ perch: true }, "", url); }
    window.scrollTo(0, 0);
    document.dispatchEvent(new CustomEvent("perch:navigated", { detail: env }));
  }

  function navigate(url, init, push) {
    init = init || {};
    var headers = new Headers(init.headers || {});
    headers.set(cfg.header, "true");
    headers.set("X-Requested-With", "XMLHttpRequest");
    var token = csrfToken();
    if (token) { headers.set("X-CSRF-Token", token); }
    init.headers = headers;
    init.credentials = "same-origin";
    return fetch(url, init)
      .then(function (resp) {
        var type = resp.headers.get("content-type") || "";
        if (type.indexOf("application/json") === -1) { throw new Error("not a partial"); }
        return resp.json();
      })
      .then(function (env) {
        if (!env.ok && !env.html) { throw new Error("status " + env.status); }
        apply(env, url, push);
      })
      .catch(function () { location.href = url; });
  }

  document.addEventListener("click", function (event) {
    var link = event.target.closest && event.target.closest("a[href]");
    if (!link || event.defaultPrevented || event.button !== 0) { return; }
    if (event.metaKey || event.ctrlKey || event.shiftKey || event.altKey) { return; }
    if (link.target || link.hasAttribute("download") || link.hasAttribute("data-no-partial")) { return; }
    if (!sameOrigin(link.href) || link.getAttribute("href").charAt(0) === "#") { return; }
    event.preventDefault();
    navigate(link.href, null, true);
  });

  document.addEventListener("submit", function (event) {
    var form = event.target;
    if (form.hasAttribute("data-no-partial") || !sameOrigin(form.action)) { return; }
    event.preventDefault();
    var method = (form.method || "get").toUpperCase();
    if (method === "GET") {
      var query = new URLSearchParams(new FormData(form)).toString();
      navigate(form.action.split("?")[0] + (query ? "?" + query : ""), null, true);
    } else {
      navigate(form.action, { method: method, body: new URLSearchParams(new FormData(form)) }, true);
    }
  });

  window.addEventListener("popstate", function () { navigate(location.href, null, false); });
})();
"""


def navigation_script_tag(config: AppConfig) -> str:
    """The ``<script>`` element injected into every full document."""
    nav_config = json.dumps(
        {"selector": config.content_selector, "header": config.partial_header}
    ).replace("<", "\\u003c")
    body = NAVIGATION_SCRIPT.replace("__PERCH_NAV_CONFIG__", nav_config)
    return f"<script>\n{body}</script>\n"


def is_partial_request(request: Request, config: AppConfig) -> bool:
    """Whether *request* asks for a fragment envelope instead of a document.

    Any of these marks a partial request:

    - the ``config.partial_header`` header (``X-Perch-Partial: true``)
    - ``X-Requested-With: XMLHttpRequest``
    - the ``config.partial_query_param`` query flag (``?_partial=1``)
    """
    header = request.headers.get(config.partial_header)
    if header is not None and header.strip().lower() in _TRUE_VALUES:
        return True
    if request.is_xhr:
        return True
    return request.query.get_bool(config.partial_query_param)


def vary_header(config: AppConfig) -> str:
    """``Vary`` value for page responses.

    One URL answers with a document or a JSON envelope depending on these
    headers, so caches and browser history must key on them.
    """
    return f"{config.partial_header}, X-Requested-With"
