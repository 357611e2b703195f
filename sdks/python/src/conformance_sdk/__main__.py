from conformance_sdk.cli import main

raise SystemExit(main())
