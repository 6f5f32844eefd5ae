"""
Matrix Ollama Relay.

Bridges the direct-message sessions of one allowed Matrix user to a local
Ollama chat model, keeping a separate conversation (history + system
prompt) per user and a small slash-command language:

    /clear, /setprompt <text>, /viewprompt, /viewconversation, /help

Entry points are ``relay.main.main`` (the ``matrix-ollama-relay`` script)
and ``relay.core.commands.CommandRouter`` for driving the core directly.
"""

__version__ = "0.1.0"
