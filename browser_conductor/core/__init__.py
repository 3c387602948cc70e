"""Core components: registry, resolver, intent translation, execution, events"""
