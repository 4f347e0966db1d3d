"""HTML for the demo join page.

The page keeps its own copy of the typed game id, updated only from input
events and mirrored into the input's data-tracked attribute, and overrides the instance-level `value` setter of the input so
plain `input.value = ...` assignments are ignored. Clicking Enter posts the
tracked id to /api/join; a native form submit reloads the page with
?gameId=... instead.
"""
from html import escape

JOIN_PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>Join a game</title></head>
<body>
  <h1>Join a game</h1>
  <form id="join" method="get" action="/">
    <input name="gameId" placeholder="Game PIN" autocomplete="off">
    <button type="submit">Enter</button>
  </form>
  <p id="result">{result}</p>
  <script>
    const input = document.querySelector('input[name="gameId"]');
    const native = Object.getOwnPropertyDescriptor(HTMLInputElement.prototype, 'value');
    let tracked = '';
    Object.defineProperty(input, 'value', {{
      get() {{ return native.get.call(this); }},
      set(v) {{ console.debug('ignored direct value write', v); }},
      configurable: true,
    }});
    input.addEventListener('input', () => {{
      tracked = native.get.call(input);
      input.dataset.tracked = tracked;
    }});
    document.getElementById('join').addEventListener('submit', async (e) => {{
      e.preventDefault();
      if (!tracked) return;
      const response = await fetch('/api/join', {{
        method: 'POST',
        headers: {{'Content-Type': 'application/json'}},
        body: JSON.stringify({{game_id: tracked}}),
      }});
      const body = await response.json();
      document.getElementById('result').textContent = body.accepted ? `Joined ${{tracked}}` : `No game ${{tracked}}`;
    }});
  </script>
</body>
</html>
"""


def render_join_page(result: str = "") -> str:
    return JOIN_PAGE.format(result=escape(result))
