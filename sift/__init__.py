# Sift: file short text cards into a tree of boxes by dragging and flicking
#
# Components:
#   schema.py    - Data model (Card, Box, Layout, default tree)
#   paths.py     - Path addressing (resolve / replace by child indices)
#   engine.py    - Mutation engine (add, reposition, move, pick, sink)
#   gestures.py  - Gesture classifier (swipe, axis, quadrant, flick policies)
#   scheduler.py - Timer scheduler and save debouncer
#   store.py     - SQLite snapshot persistence
#   board.py     - Owned tree, subscriptions, gesture routing
#   config.py    - YAML configuration and logging setup
