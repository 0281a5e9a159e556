"""HTML page that hosts Plaid Link for the local handshake.

Plaid Link reports completion through two client-side callbacks:
``onSuccess(public_token, metadata)`` and ``onExit(error, metadata)``, where
``error`` is null or carries ``error_type``, ``error_code``,
``error_message`` and ``display_message``. The page forwards those arguments
unchanged as JSON to the callback path of the local server.
"""

import json
from html import escape as html_escape

from ..schemas import LinkWidgetConfig

PLAID_LINK_SCRIPT = "https://cdn.plaid.com/link/v2/stable/link-initialize.js"

LINK_PAGE_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8" />
  <title>{title}</title>
  <style>
    body {{ font-family: sans-serif; margin: 3rem; }}
    .card {{
      max-width: 32rem;
      padding: 2rem;
      border: 1px solid #ccc;
      border-radius: 0.5rem;
    }}
    .error {{ color: #941a1d; }}
    button {{ padding: 0.5rem 1rem; font-size: 1rem; cursor: pointer; }}
  </style>
  <script src="{script_src}"></script>
</head>
<body>
  <div class="card">
    <h1>{title}</h1>
    <p>{description}</p>
    <p><small>Environment: {environment} &middot; Products: {products}</small></p>
    <div id="status"></div>
    <button id="link-button">Open Plaid Link</button>
  </div>
  <script>
    (function() {{
      var config = {config_json};
      var status = document.getElementById("status");
      var button = document.getElementById("link-button");

      function finish(payload, message, isError) {{
        button.style.display = "none";
        status.className = isError ? "error" : "";
        status.textContent = "Reporting result to linkbin...";
        return fetch(config.callbackPath, {{
          method: "POST",
          headers: {{ "Content-Type": "application/json" }},
          body: JSON.stringify(payload)
        }}).then(function() {{
          status.textContent = message;
        }}).catch(function(err) {{
          status.className = "error";
          status.textContent = "Could not reach linkbin: " + err;
        }});
      }}

      var handler = Plaid.create({{
        token: config.linkToken,
        onSuccess: function(public_token, metadata) {{
          finish(
            {{ public_token: public_token, metadata: metadata }},
            "Link successful. You can return to the terminal and close this window.",
            false
          );
        }},
        onExit: function(error, metadata) {{
          finish(
            {{ error: error, metadata: metadata }},
            "Link was not completed. Check the terminal for details.",
            true
          );
        }}
      }});

      button.onclick = function() {{ handler.open(); }};
      handler.open();
    }})();
  </script>
</body>
</html>
"""


def _script_json(value: object) -> str:
    """Serialize a value for embedding inside a ``<script>`` element."""
    return (
        json.dumps(value)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def render_link_page(widget: LinkWidgetConfig, callback_path: str) -> str:
    """Render the Plaid Link page for one handshake.

    Args:
        widget: Link token and display options
        callback_path: Server path receiving the Link result

    Returns:
        str: Complete HTML document
    """
    if widget.update_mode:
        title = "Re-link account"
        description = (
            "Re-authorise item <code>"
            + html_escape(widget.item_id)
            + "</code> with your bank."
        )
    else:
        title = "Link account"
        description = "Connect a bank account to linkbin."

    config = {
        "linkToken": widget.link_token,
        "callbackPath": callback_path,
    }
    return LINK_PAGE_TEMPLATE.format(
        title=title,
        description=description,
        environment=html_escape(widget.environment),
        products=html_escape(", ".join(widget.products)),
        script_src=PLAID_LINK_SCRIPT,
        config_json=_script_json(config),
    )
