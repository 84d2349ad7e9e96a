"""
Wrapper to run the termi CLI from a source checkout.

Usage:
  python main.py ping baidu.com
  python main.py --once --lang en "delete the old log files"
"""

from termi import main


if __name__ == "__main__":
    main()
