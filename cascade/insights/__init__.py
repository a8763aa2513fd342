# Insights Module
# Portfolio metrics over an employer's streams (engine.py)
