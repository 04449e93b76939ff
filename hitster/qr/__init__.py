"""QR scanning for Hitster Player"""
