"""Unit tests for the parkflow domain, application and infrastructure layers"""
