# Interactive prompts (questionary); imported lazily by main.py.
