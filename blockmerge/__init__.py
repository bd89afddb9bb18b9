"""
blockmerge Package
==================

Column-drop number merging puzzle: blocks fall into a fixed grid, equal
neighbours combine, and merges cascade under gravity until the board is
stable.

- Block generation and preview queue
- Landing and termination rules
- Merge resolution and scoring
- Heuristic move evaluation

All tunable parameters are in game_config.yaml.
"""
