# core/shims.py
"""Compatibility shims injected into exported playables."""
from typing import Any, Dict
from core.html_inject import script_json
from util.constants import VARS_GLOBAL

DEFAULT_STORE_URL = "https://apps.apple.com/"


def mintegral_shim(values: Dict[str, Any]) -> str:
    return f"""
<script>
// Mintegral integration
(function() {{
    {VARS_GLOBAL} = {script_json(values)};

    window.install = function() {{
        console.log('[Mintegral] Install clicked');
        if (typeof window.gameEnd === 'function') {{
            window.gameEnd();
        }}
    }};

    // Required by Mintegral; the host handles the redirect.
    window.gameEnd = function() {{
        console.log('[Mintegral] Game ended');
    }};
}})();
</script>
"""


def mraid_shim(values: Dict[str, Any], store_url: str = DEFAULT_STORE_URL) -> str:
    return f"""
<script>
// MRAID v2.0 integration
(function() {{
    {VARS_GLOBAL} = {script_json(values)};

    // First-interaction latch: media stays muted until the user taps once.
    var interacted = false;
    function muteAll(muted) {{
        var media = document.querySelectorAll('audio, video');
        for (var i = 0; i < media.length; i++) {{
            media[i].muted = muted;
        }}
    }}
    function onFirstInteraction() {{
        if (interacted) return;
        interacted = true;
        muteAll(false);
        document.removeEventListener('click', onFirstInteraction, true);
        document.removeEventListener('touchstart', onFirstInteraction, true);
        if (typeof window.onFirstInteraction === 'function') {{
            window.onFirstInteraction();
        }}
    }}
    muteAll(true);
    document.addEventListener('DOMContentLoaded', function() {{
        if (!interacted) muteAll(true);
    }});
    document.addEventListener('click', onFirstInteraction, true);
    document.addEventListener('touchstart', onFirstInteraction, true);

    function onMRAIDReady() {{
        console.log('[MRAID] Ready, state:', mraid.getState());
        mraid.addEventListener('orientationChange', function(orientation) {{
            console.log('[MRAID] Orientation changed:', orientation);
        }});
        mraid.addEventListener('sizeChange', function(width, height) {{
            console.log('[MRAID] Size changed:', width, 'x', height);
        }});
        mraid.addEventListener('stateChange', function(state) {{
            console.log('[MRAID] State changed:', state);
        }});
    }}

    if (typeof mraid !== 'undefined') {{
        if (mraid.getState() === 'loading') {{
            mraid.addEventListener('ready', onMRAIDReady);
        }} else {{
            onMRAIDReady();
        }}
    }} else {{
        console.warn('[MRAID] Not available - running standalone');
    }}

    window.openAppStore = function(url) {{
        var target = url || {script_json(store_url)};
        if (typeof mraid !== 'undefined' && typeof mraid.open === 'function') {{
            mraid.open(target);
        }} else {{
            window.location.href = target;
        }}
    }};
}})();
</script>
"""
