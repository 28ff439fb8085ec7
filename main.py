"""ClipStash entry point"""

from clipstash.app import main


if __name__ == "__main__":
    main()
