"""Configuration for Hitster Player"""
