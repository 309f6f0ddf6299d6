"""Python-Markdown extension that shields math from markdown processing.

    import markdown
    html = markdown.markdown(text, extensions=[MathJaxExtension(), "smarty"])

The preprocessor runs before every other preprocessor and replaces math with
tokens; the postprocessor runs after every other postprocessor and swaps the
tokens back. Each conversion gets a fresh session.
"""

from __future__ import annotations

from markdown import Markdown
from markdown.extensions import Extension
from markdown.postprocessors import Postprocessor
from markdown.preprocessors import Preprocessor

from mathshield.engine import MathJax

# normalize_whitespace runs at 30
PROTECT_PRIORITY = 35
# amp_substitute runs at 20, unescape at 10
RESTORE_PRIORITY = 5


class MathJaxExtension(Extension):
    def __init__(self, **kwargs) -> None:
        self.config = {
            "renderer": ["span-escaped", "Renderer mode: identity, span or span-escaped"],
            "representation": ["rendered", "Representation restored: rendered or raw"],
            "namespace": ["mathjax", "Token namespace marker"],
            "strict": [False, "Raise when tokens are lost during conversion"],
        }
        super().__init__(**kwargs)
        self.engine = self._build_engine()

    def _build_engine(self) -> MathJax:
        return MathJax(
            renderer=self.getConfig("renderer"),
            namespace=self.getConfig("namespace"),
            representation=self.getConfig("representation"),
            strict=bool(self.getConfig("strict")),
        )

    def extendMarkdown(self, md: Markdown) -> None:
        md.registerExtension(self)
        md.preprocessors.register(MathProtectPreprocessor(md, self.engine), "mathjax_protect", PROTECT_PRIORITY)
        md.postprocessors.register(MathRestorePostprocessor(md, self.engine), "mathjax_restore", RESTORE_PRIORITY)

    def reset(self) -> None:
        self.engine.reset()


class MathProtectPreprocessor(Preprocessor):
    def __init__(self, md: Markdown, engine: MathJax) -> None:
        super().__init__(md)
        self.engine = engine

    def run(self, lines: list[str]) -> list[str]:
        self.engine.reset()
        return self.engine.protect("\n".join(lines)).split("\n")


class MathRestorePostprocessor(Postprocessor):
    def __init__(self, md: Markdown, engine: MathJax) -> None:
        super().__init__(md)
        self.engine = engine

    def run(self, text: str) -> str:
        if not self.engine.modified():
            return text
        return self.engine.restore(text)


def makeExtension(**kwargs) -> MathJaxExtension:
    return MathJaxExtension(**kwargs)
