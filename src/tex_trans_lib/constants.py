CONFIG_FILENAME = "tex_trans_conf.json"

DEFAULT_MAX_CHUNK_SIZE = 4000
INTER_CHUNK_DELAY_SECONDS = 0.5

DEFAULT_TARGET_LANGUAGE = "Simplified Chinese"
DEFAULT_OUTPUT_DIR = "output"

# token written in place of a protected subtree
DEFAULT_TOKEN_FORMAT = '<ph id="{id}"/>'
# placeholder ids, e.g. IMATH_0003
ID_PATTERN = r"[A-Z][A-Z_]*_\d+"
ID_COUNTER_WIDTH = 4

TEX_EXTENSIONS = (".tex", ".ltx", ".latex")

ORIGINAL_DIR_NAME = "original"
TRANSLATED_DIR_NAME = "translated"
LOG_DIR_NAME = "log"
TRANSLATION_LOG_FILENAME = "translation.log"

LLM_API_KEY_ENV = "LLM_API_KEY"

# Environments whose body is never parsed as LaTeX
VERBATIM_ENVIRONMENTS = ("verbatim", "verbatim*", "Verbatim", "lstlisting", "minted", "comment")

CTEX_PACKAGE_LINE = r"\usepackage[UTF8]{ctex}"

# Macro definitions, always protected whole
DEFINITION_COMMANDS = ("newcommand", "renewcommand", "providecommand", "newenvironment",
                       "renewenvironment", "DeclareMathOperator")
