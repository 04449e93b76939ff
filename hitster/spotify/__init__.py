"""Spotify Web API helpers for Hitster Player"""
