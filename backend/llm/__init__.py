# LLM module: chat completions client and prompt templates
