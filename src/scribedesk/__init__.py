__app_name__ = "ScribeDesk"
__version__ = "0.1.0"
