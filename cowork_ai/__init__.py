"""cowork-ai.

This package contains the agent runtime behind a desktop co-working assistant:
a language model converses with the user and may call side-effecting tools on
the user's machine over several round trips within one turn.

High-level architecture
-----------------------

The codebase is organized around a single turn of conversation:

- **Streaming**: the model's output arrives as an async sequence of typed
  events (text deltas, tool-call requests) which the runtime folds into a draft
  assistant message.
- **Tool execution**: requested tools run through a registry that validates
  (and, for weak providers, repairs) arguments, enforces a sensitive-path
  deny-list, and asks a human before running risky tools.
- **Context budget**: history is measured against the model's context window
  and compacted into a summary when it grows too large.

Core subpackages
----------------

- ``cowork_ai.agent_core``:

  - Tool catalogue, registry and provider compatibility adapter.
  - Policy primitives (risk tiers, approval gateway, safety filter, command guard).
  - Context window manager and system prompt builder.
  - The agent loop controller and per-conversation run state.

- ``cowork_ai.core``:

  - Settings and logging configuration.
"""
