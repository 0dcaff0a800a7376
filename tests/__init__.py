"""Test package for parkflow"""
