"""Core application modules for Hitster Player"""
