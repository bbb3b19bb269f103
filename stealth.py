"""
Stealth Settings
Browser launch flags and declarative page-initialization directives that hide
automation indicators from the search engine
"""

import json
from typing import Any, List, Optional

from pydantic import BaseModel


# Chromium flags applied to every launch
LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--disable-site-isolation-trials",
    "--disable-web-security",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--hide-scrollbars",
    "--mute-audio",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-breakpad",
    "--disable-component-extensions-with-background-pages",
    "--disable-extensions",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
    "--disable-renderer-backgrounding",
    "--enable-features=NetworkService,NetworkServiceInProcess",
    "--force-color-profile=srgb",
    "--metrics-recording-only",
]

# Default Playwright switches that reveal automation
IGNORE_DEFAULT_ARGS = ["--enable-automation"]

# WebGL debug-renderer-info parameters
UNMASKED_VENDOR_WEBGL = 37445
UNMASKED_RENDERER_WEBGL = 37446


class PropertyOverride(BaseModel):
    """Replace a read-only property getter with a fixed value"""
    target: str
    prop: str
    value: Any


class GlobalAssignment(BaseModel):
    """Assign a fixed value to a window-level name"""
    name: str
    value: Any
    functions: List[str] = []


class WebGLOverride(BaseModel):
    """Answer WebGL vendor/renderer queries with fixed strings"""
    vendor: str
    renderer: str


# Applied to every page in a browsing context
CONTEXT_DIRECTIVES = [
    PropertyOverride(target="navigator", prop="webdriver", value=False),
    PropertyOverride(target="navigator", prop="plugins", value=[1, 2, 3, 4, 5]),
    PropertyOverride(target="navigator", prop="languages", value=["en-US", "en"]),
    GlobalAssignment(
        name="chrome",
        value={"runtime": {}, "app": {}},
        functions=["loadTimes", "csi"],
    ),
    WebGLOverride(vendor="Intel Inc.", renderer="Intel Iris OpenGL Engine"),
]

# Applied to the search page: realistic screen dimensions and color depth
PAGE_DIRECTIVES = [
    PropertyOverride(target="window.screen", prop="width", value=1920),
    PropertyOverride(target="window.screen", prop="height", value=1080),
    PropertyOverride(target="window.screen", prop="colorDepth", value=24),
    PropertyOverride(target="window.screen", prop="pixelDepth", value=24),
]


def _render_directive(directive) -> str:
    if isinstance(directive, PropertyOverride):
        value = json.dumps(directive.value)
        return (
            f"Object.defineProperty({directive.target}, {json.dumps(directive.prop)}, "
            f"{{ get: () => {value} }});"
        )

    if isinstance(directive, GlobalAssignment):
        functions = "".join(
            f"window[{json.dumps(directive.name)}][{json.dumps(fn)}] = function () {{}};"
            for fn in directive.functions
        )
        return f"window[{json.dumps(directive.name)}] = {json.dumps(directive.value)};{functions}"

    if isinstance(directive, WebGLOverride):
        return (
            "if (typeof WebGLRenderingContext !== 'undefined') {"
            " const getParameter = WebGLRenderingContext.prototype.getParameter;"
            " WebGLRenderingContext.prototype.getParameter = function (parameter) {"
            f" if (parameter === {UNMASKED_VENDOR_WEBGL}) return {json.dumps(directive.vendor)};"
            f" if (parameter === {UNMASKED_RENDERER_WEBGL}) return {json.dumps(directive.renderer)};"
            " return getParameter.call(this, parameter);"
            " };"
            " }"
        )

    raise TypeError(f"Unsupported init directive: {type(directive).__name__}")


def render_init_script(directives: Optional[List[BaseModel]] = None) -> str:
    """
    Render directives into a script for add_init_script

    Each directive runs in its own try block.
    """
    if directives is None:
        directives = CONTEXT_DIRECTIVES

    body = "\n".join(
        f"  try {{ {_render_directive(d)} }} catch (e) {{}}" for d in directives
    )
    return f"(() => {{\n{body}\n}})();"
