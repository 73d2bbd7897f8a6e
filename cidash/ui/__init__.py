"""Interactive controller and Textual shell for the cidash dashboard."""
