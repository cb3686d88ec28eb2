from .scripts.run_script import main

if __name__ == "__main__":
    raise SystemExit(main())
