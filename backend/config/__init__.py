"""
Project configuration (config.toml) and its loader
"""
