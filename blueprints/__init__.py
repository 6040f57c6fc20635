# SLOTCAST REST blueprints
# Each module exposes a create_*_bp(...) factory taking the components it routes to.
