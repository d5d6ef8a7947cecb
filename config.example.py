# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file,
see taskdeck/config.py). Do NOT commit real secrets; keep them in .env (gitignored).

This file lists every variable the server and the terminal client read.
"""

ENV_VARS = {
    # App / logging
    "TASKDECK_APP_NAME": "App display name (default: taskdeck).",
    "TASKDECK_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Taskwarrior
    "TASKDECK_DATA_DIR": "Private Taskwarrior data directory; holds .taskrc (default: data/taskwarrior).",
    "TASKDECK_TASK_BIN": "Taskwarrior executable (default: task).",
    "TASKDECK_TASKSH_BIN": "Interactive shell executable (default: tasksh).",
    "TASKDECK_COMMAND_TIMEOUT_SECONDS": "Per-invocation timeout (default: 30).",
    "TASKDECK_READBACK_ATTEMPTS": "Read-back polls after a write before falling back (default: 5).",
    "TASKDECK_READBACK_DELAY_SECONDS": "Fixed delay between read-backs (default: 0.2).",
    # Server
    "TASKDECK_HOST": "Bind address for both listeners (default: 127.0.0.1).",
    "TASKDECK_HTTP_PORT": "HTTP JSON API port (default: 5000).",
    "TASKDECK_WS_PORT": "Terminal WebSocket port (default: 5001).",
    "TASKDECK_WS_PATH": "Terminal WebSocket path (default: /terminal).",
    "TASKDECK_ADD_FOLLOWUP_DELAY_SECONDS": "Pause between 'add' and its description line (default: 0.1).",
    # Terminal client
    "TASKDECK_TERMINAL_URL": "Session URL (default: ws://<host>:<ws_port><ws_path>).",
    "TASKDECK_TERMINAL_PROMPT": "Input prompt (default: 'tasksh> ').",
    "TASKDECK_RECONNECT_ATTEMPTS": "Reconnects after a close before giving up (default: 5).",
    "TASKDECK_RECONNECT_DELAY_SECONDS": "Fixed delay between reconnects (default: 2).",
    # LLM (OpenAI-compatible)
    "TASKDECK_LLM_API_KEY": "API key; OPENAI_API_KEY is accepted too. Unset => offline assistant.",
    "TASKDECK_LLM_BASE_URL": "API base URL; OPENAI_BASE_URL is accepted too (default: https://api.openai.com/v1).",
    "TASKDECK_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "TASKDECK_LLM_CONNECT_TIMEOUT_SECONDS": "Connect timeout (default: 5).",
    "TASKDECK_LLM_READ_TIMEOUT_SECONDS": "Read timeout, never below the first-token timeout (default: 25).",
    "TASKDECK_LLM_FIRST_TOKEN_TIMEOUT_SECONDS": "Move to the next model when no token arrives in time (default: 20).",
}
